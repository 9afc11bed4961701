"""Shared helpers for the table endpoint modules.

It is internal to pyfeeding and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pyfeeding.exceptions import FeedingMalformedValueError


def eq(value: str) -> str:
    """PostgREST equality filter."""
    return f"eq.{value}"


def in_list(values: list[str]) -> str:
    """PostgREST ``in`` filter."""
    return f"in.({','.join(values)})"


def expect_rows(payload: Any, *, endpoint: str) -> list[dict[str, Any]]:
    """Return *payload* as a list of row objects.

    ``None`` (an empty body) counts as no rows.
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise FeedingMalformedValueError(f"{endpoint} returned {type(payload).__name__}, expected a list of rows")
    return [row for row in payload if isinstance(row, dict)]
