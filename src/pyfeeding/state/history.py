"""Feeding history with graceful degradation.

:class:`HistoryStore` keeps the last collection it successfully read.
Every operation returns a collection: the updated one on success, or the
previously known one (after logging) when the backend fails.
"""

from __future__ import annotations

import logging

from pyfeeding._constants import HISTORY_LIMIT
from pyfeeding.exceptions import FeedingStoreError
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, RecordKey
from pyfeeding.state.store import HistoryBackend

_logger = logging.getLogger(__name__)


class HistoryStore:
    """Newest-first history capped to *limit* records."""

    def __init__(self, backend: HistoryBackend, *, limit: int = HISTORY_LIMIT) -> None:
        self._backend = backend
        self._limit = limit
        self._records: list[FeedingRecord] = []

    @property
    def limit(self) -> int:
        return self._limit

    async def list(self) -> list[FeedingRecord]:
        try:
            records = await self._backend.fetch(self._limit)
        except FeedingStoreError:
            _logger.warning(
                "History read failed; keeping %d known records",
                len(self._records),
                exc_info=True,
            )
            return list(self._records)
        self._records = records[: self._limit]
        return list(self._records)

    async def for_date(self, date: str) -> list[FeedingRecord]:
        return [record for record in await self.list() if record.date == date]

    async def contains(self, key: RecordKey) -> bool:
        return any(record.key == key for record in await self.list())

    async def append(self, record: FeedingRecord) -> list[FeedingRecord]:
        """Add *record* unless one with the same key already exists."""
        await self._append(record)
        return list(self._records)

    async def _append(self, record: FeedingRecord) -> bool:
        current = await self.list()
        if any(existing.key == record.key for existing in current):
            _logger.debug("History already has %s on %s at %s", *record.key)
            return False

        try:
            await self._backend.insert(record)
        except FeedingStoreError:
            _logger.warning("History append failed for %s on %s", record.slot, record.date, exc_info=True)
            return False

        self._records = [record, *current][: self._limit]

        try:
            await self._backend.trim(self._limit)
        except FeedingStoreError:
            _logger.warning("History trim failed", exc_info=True)
        return True

    async def archive(self, records: list[FeedingRecord]) -> int:
        """Append each of *records*; return how many were new."""
        added = 0
        for record in records:
            if await self._append(record):
                added += 1
        return added

    async def remove_most_recent(self, slot: FeedingSlot, date: str) -> list[FeedingRecord]:
        """Remove only the newest record for *slot* on *date*."""
        try:
            removed = await self._backend.delete_most_recent(slot, date)
        except FeedingStoreError:
            _logger.warning("History delete failed for %s on %s", slot, date, exc_info=True)
            return list(self._records)

        if removed:
            for index, existing in enumerate(self._records):
                if existing.slot == slot and existing.date == date:
                    del self._records[index]
                    break
        return list(self._records)
