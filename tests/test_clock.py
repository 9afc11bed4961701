from __future__ import annotations

from datetime import UTC, datetime

from pyfeeding.clock import FeedingClock, format_timestamp


def test_today_id_uses_local_date_fields() -> None:
    # 03:30 UTC on Jan 2 is still the evening of Jan 1 in New York.
    clock = FeedingClock(
        time_zone="America/New_York",
        now_fn=lambda: datetime(2024, 1, 2, 3, 30, tzinfo=UTC),
    )

    assert clock.today_id() == "2024-01-01"
    assert clock.current_hour() == 22


def test_today_id_zero_pads_month_and_day() -> None:
    clock = FeedingClock(time_zone="UTC", now_fn=lambda: datetime(2024, 3, 5, 12, tzinfo=UTC))

    assert clock.today_id() == "2024-03-05"
    assert clock.current_hour() == 12


def test_naive_now_is_treated_as_utc() -> None:
    clock = FeedingClock(time_zone="Europe/Madrid", now_fn=lambda: datetime(2024, 7, 1, 23, 0))

    # UTC+2 in summer.
    assert clock.today_id() == "2024-07-02"
    assert clock.current_hour() == 1


def test_timestamp_is_utc_iso_with_milliseconds() -> None:
    clock = FeedingClock(
        time_zone="America/New_York",
        now_fn=lambda: datetime(2024, 1, 2, 3, 30, 15, 123456, tzinfo=UTC),
    )

    assert clock.timestamp() == "2024-01-02T03:30:15.123Z"


def test_format_timestamp_converts_to_utc() -> None:
    value = datetime.fromisoformat("2024-01-01T19:00:00-05:00")

    assert format_timestamp(value) == "2024-01-02T00:00:00.000Z"
