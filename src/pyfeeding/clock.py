"""Wall-clock helpers for the local feeding day."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def _utcnow() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Format *value* as an ISO-8601 UTC string with millisecond precision.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FeedingClock:
    """Derive the local calendar-day id and hour from the wall clock.

    The day id is built from the local date fields rather than a slice of
    a UTC timestamp, so an evening check west of UTC still lands on the
    local day.
    """

    def __init__(
        self,
        *,
        time_zone: str | None = None,
        now_fn: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._tz = ZoneInfo(time_zone) if time_zone else None
        self._now_fn = now_fn

    def now(self) -> datetime:
        """Timezone-aware local now."""
        current = self._now_fn()
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        # astimezone(None) converts to the host's local zone.
        return current.astimezone(self._tz)

    def today_id(self) -> str:
        local = self.now()
        return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"

    def current_hour(self) -> int:
        return self.now().hour

    def timestamp(self) -> str:
        """Current instant as an ISO-8601 UTC timestamp."""
        return format_timestamp(self._now_fn())


def utc_timestamp() -> str:
    """Current instant formatted by :func:`format_timestamp`."""
    return format_timestamp(_utcnow())
