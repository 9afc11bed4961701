"""Data models for feeding state and history."""

from pyfeeding.models._base import DateId, FeedingBaseModel, check_date_id
from pyfeeding.models.feeding import (
    FeedingRecord,
    FeedingSlot,
    FeedingState,
    FeedingStatus,
    RecordKey,
    parse_history_rows,
)

__all__ = [
    "DateId",
    "FeedingBaseModel",
    "FeedingRecord",
    "FeedingSlot",
    "FeedingState",
    "FeedingStatus",
    "RecordKey",
    "check_date_id",
    "parse_history_rows",
]
