"""Feeding slot, status, state and history record models."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import Field, ValidationError, field_validator, model_validator

from pyfeeding.exceptions import FeedingMalformedValueError
from pyfeeding.models._base import DateId, FeedingBaseModel

_logger = logging.getLogger(__name__)


class FeedingSlot(StrEnum):
    MORNING = "morning"
    EVENING = "evening"


RecordKey = tuple[FeedingSlot, str, str]
"""Uniqueness key of a history record: ``(slot, date, timestamp)``."""


class FeedingStatus(FeedingBaseModel):
    """Completion status of one slot.

    ``caretaker`` and ``timestamp`` are set exactly when ``done`` is true.
    """

    slot: FeedingSlot
    done: bool = False
    caretaker: str | None = None
    timestamp: str | None = None

    @model_validator(mode="after")
    def _check_completion_fields(self) -> FeedingStatus:
        if self.done and not (self.caretaker and self.timestamp):
            raise ValueError("a done slot needs both caretaker and timestamp")
        if not self.done and (self.caretaker is not None or self.timestamp is not None):
            raise ValueError("a pending slot cannot carry caretaker or timestamp")
        return self

    @classmethod
    def pending(cls, slot: FeedingSlot) -> FeedingStatus:
        return cls(slot=slot, done=False)

    @classmethod
    def completed(cls, slot: FeedingSlot, caretaker: str, timestamp: str) -> FeedingStatus:
        return cls(slot=slot, done=True, caretaker=caretaker, timestamp=timestamp)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


def _coerce_slot(slot: FeedingSlot, value: Any) -> FeedingStatus:
    """Parse one stored slot, falling back to pending when it is unusable."""
    if isinstance(value, FeedingStatus):
        if value.slot is slot:
            return value
        value = value.model_dump()
    if not isinstance(value, Mapping):
        if value is not None:
            _logger.warning("Stored %s slot is not an object, using pending: %r", slot, value)
        return FeedingStatus.pending(slot)
    try:
        # The mapping key decides the slot, whatever the payload says.
        return FeedingStatus.model_validate({**value, "slot": slot})
    except ValidationError:
        _logger.warning("Stored %s slot is malformed, using pending: %r", slot, value)
        return FeedingStatus.pending(slot)


class FeedingState(FeedingBaseModel):
    """Feeding state of one calendar day, covering every slot."""

    date: DateId
    slots: dict[FeedingSlot, FeedingStatus] = Field(default_factory=dict)

    @field_validator("slots", mode="before")
    @classmethod
    def _fill_slots(cls, value: Any) -> dict[FeedingSlot, FeedingStatus]:
        source: Mapping[Any, Any] = value if isinstance(value, Mapping) else {}
        by_name = {str(key): item for key, item in source.items()}
        return {slot: _coerce_slot(slot, by_name.get(slot.value)) for slot in FeedingSlot}

    @classmethod
    def blank(cls, date: str) -> FeedingState:
        return cls(date=date, slots={})

    def status(self, slot: FeedingSlot) -> FeedingStatus:
        return self.slots[slot]

    def with_status(self, status: FeedingStatus) -> FeedingState:
        """Return a copy with *status* replacing its slot."""
        slots = dict(self.slots)
        slots[status.slot] = status
        return self.model_copy(update={"slots": slots})

    @property
    def is_blank(self) -> bool:
        return not any(status.done for status in self.slots.values())

    def completed_records(self) -> list[FeedingRecord]:
        """History records for every done slot, dated with this state's date."""
        records: list[FeedingRecord] = []
        for slot in FeedingSlot:
            status = self.slots[slot]
            if status.done and status.caretaker and status.timestamp:
                records.append(
                    FeedingRecord(
                        slot=slot,
                        caretaker=status.caretaker,
                        date=self.date,
                        timestamp=status.timestamp,
                    )
                )
        return records

    def to_row(self, *, updated_at: str | None = None, owner: str | None = None) -> dict[str, Any]:
        row: dict[str, Any] = {
            "date": self.date,
            "slots": {slot.value: self.slots[slot].to_row() for slot in FeedingSlot},
        }
        if updated_at is not None:
            row["updated_at"] = updated_at
        if owner is not None:
            row["owner"] = owner
        return row

    @classmethod
    def from_row(cls, row: Any) -> FeedingState:
        """Parse a persisted state row.

        Malformed slots fall back to pending; a row without a usable date
        raises :class:`FeedingMalformedValueError`.
        """
        if not isinstance(row, Mapping):
            raise FeedingMalformedValueError(f"State row is not an object: {row!r}")
        try:
            return cls.model_validate({"date": row.get("date"), "slots": row.get("slots")})
        except ValidationError as exc:
            raise FeedingMalformedValueError(f"State row is malformed: {exc}") from exc


class FeedingRecord(FeedingBaseModel):
    """A completed feeding, archived in the history."""

    slot: FeedingSlot
    caretaker: str = Field(min_length=1)
    date: DateId
    timestamp: str = Field(min_length=1)

    @property
    def key(self) -> RecordKey:
        return (self.slot, self.date, self.timestamp)

    def to_status(self) -> FeedingStatus:
        return FeedingStatus.completed(self.slot, self.caretaker, self.timestamp)

    def to_row(self, *, created_at: str | None = None, owner: str | None = None) -> dict[str, Any]:
        row = self.model_dump(mode="json")
        if created_at is not None:
            row["created_at"] = created_at
        if owner is not None:
            row["owner"] = owner
        return row

    @classmethod
    def from_row(cls, row: Any) -> FeedingRecord:
        if not isinstance(row, Mapping):
            raise FeedingMalformedValueError(f"History row is not an object: {row!r}")
        try:
            return cls.model_validate(row)
        except ValidationError as exc:
            raise FeedingMalformedValueError(f"History row is malformed: {exc}") from exc


def parse_history_rows(rows: Any) -> list[FeedingRecord]:
    """Parse stored history rows, skipping (and logging) malformed ones."""
    if not isinstance(rows, list):
        if rows is not None:
            _logger.warning("Stored history is not a list, treating as empty")
        return []
    records: list[FeedingRecord] = []
    for row in rows:
        try:
            records.append(FeedingRecord.from_row(row))
        except FeedingMalformedValueError:
            _logger.warning("Skipping malformed history row: %r", row)
    return records
