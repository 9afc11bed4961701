"""State layer.

This package owns the daily-reset policy, the store contracts and the
reconciler that merges the stored day state with the feeding history
into the authoritative state returned to callers.
"""
