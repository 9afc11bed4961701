"""Masking of credentials in request debug logs.

Every datastore request carries the API key twice, as the ``apikey``
header and inside the ``Authorization`` bearer value.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset({"apikey", "api_key", "authorization", "password", "mqtt_password"})

REDACTED = "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 200) -> Any:
    """Return a copy of a header mapping or JSON body safe for debug logs.

    Values under credential keys are masked at any depth and long
    strings (such as error bodies) are cut to *max_string* characters.
    """
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
