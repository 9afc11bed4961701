"""Daily reset policy.

A state from an earlier (or, with clock skew, later) day is only
archived and blanked once the local clock reaches the reset hour, so a
caretaker checking in at 2 AM still sees the previous day's feedings.
"""

from __future__ import annotations

from pyfeeding._constants import DEFAULT_RESET_HOUR
from pyfeeding.clock import FeedingClock


def should_reset(
    stored_date: str,
    *,
    today: str,
    current_hour: int,
    reset_hour: int = DEFAULT_RESET_HOUR,
) -> bool:
    """Decide whether a stored state must be archived and blanked."""
    if stored_date == today:
        return False
    return current_hour >= reset_hour


class ResetPolicy:
    """:func:`should_reset` bound to a clock and a reset hour."""

    def __init__(self, clock: FeedingClock, *, reset_hour: int = DEFAULT_RESET_HOUR) -> None:
        self._clock = clock
        self._reset_hour = reset_hour

    @property
    def reset_hour(self) -> int:
        return self._reset_hour

    def should_reset(self, stored_date: str) -> bool:
        return should_reset(
            stored_date,
            today=self._clock.today_id(),
            current_hour=self._clock.current_hour(),
            reset_hour=self._reset_hour,
        )
