"""Store contracts.

Backends (REST, JSON file, in-memory) implement these protocols and raise
:class:`~pyfeeding.exceptions.FeedingStoreError` when they cannot reach
their storage. Degrading such failures into safe defaults is the job of
the reconciler and :class:`~pyfeeding.state.history.HistoryStore`, not
of the backends.
"""

from __future__ import annotations

from typing import Protocol

from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState


class StateStore(Protocol):
    """Durable record of the day state, one row per date."""

    async def get(self, date: str) -> FeedingState | None:
        """Return the state stored for *date*, if any."""
        ...

    async def latest(self) -> FeedingState | None:
        """Return the stored state with the greatest date, if any."""
        ...

    async def upsert(self, state: FeedingState) -> None:
        """Insert or fully replace the row for ``state.date`` (last write wins)."""
        ...


class HistoryBackend(Protocol):
    """Append/delete log of feeding records, newest first."""

    async def fetch(self, limit: int) -> list[FeedingRecord]:
        """Return up to *limit* records, newest first."""
        ...

    async def insert(self, record: FeedingRecord) -> None:
        ...

    async def delete_most_recent(self, slot: FeedingSlot, date: str) -> bool:
        """Delete the single newest record for *slot* on *date*.

        Returns ``False`` when there was nothing to delete.
        """
        ...

    async def trim(self, limit: int) -> None:
        """Evict the oldest records beyond *limit*."""
        ...
