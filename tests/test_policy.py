from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyfeeding.clock import FeedingClock
from pyfeeding.state.policy import ResetPolicy, should_reset


@pytest.mark.parametrize("hour", range(24))
def test_same_day_never_resets(hour: int) -> None:
    assert should_reset("2024-01-02", today="2024-01-02", current_hour=hour, reset_hour=7) is False


@pytest.mark.parametrize("hour", range(24))
def test_previous_day_resets_only_from_reset_hour(hour: int) -> None:
    result = should_reset("2024-01-01", today="2024-01-02", current_hour=hour, reset_hour=7)
    assert result is (hour >= 7)


def test_previous_day_before_reset_hour_keeps_yesterday() -> None:
    assert should_reset("2024-01-01", today="2024-01-02", current_hour=6, reset_hour=7) is False


def test_previous_day_at_reset_hour_resets() -> None:
    assert should_reset("2024-01-01", today="2024-01-02", current_hour=7, reset_hour=7) is True


def test_future_date_uses_the_same_hour_test() -> None:
    assert should_reset("2024-01-03", today="2024-01-02", current_hour=3, reset_hour=7) is False
    assert should_reset("2024-01-03", today="2024-01-02", current_hour=9, reset_hour=7) is True


def test_reset_policy_reads_the_clock() -> None:
    clock = FeedingClock(time_zone="UTC", now_fn=lambda: datetime(2024, 1, 2, 7, 30, tzinfo=UTC))

    assert ResetPolicy(clock, reset_hour=7).should_reset("2024-01-01") is True
    assert ResetPolicy(clock, reset_hour=8).should_reset("2024-01-01") is False
    assert ResetPolicy(clock, reset_hour=8).reset_hour == 8
    assert ResetPolicy(clock).should_reset("2024-01-02") is False
