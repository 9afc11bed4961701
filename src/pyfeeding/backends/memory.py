"""In-memory backends.

Useful for tests and single-process use. When given an
:class:`~pyfeeding.state.events.EventFeed` they announce every write on
it, the way a realtime-enabled database would.
"""

from __future__ import annotations

from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState
from pyfeeding.state.events import EventFeed, FeedAction, FeedChannel, FeedEvent


class MemoryStateStore:
    def __init__(self, *, feed: EventFeed | None = None) -> None:
        self._rows: dict[str, FeedingState] = {}
        self._feed = feed

    async def get(self, date: str) -> FeedingState | None:
        return self._rows.get(date)

    async def latest(self) -> FeedingState | None:
        if not self._rows:
            return None
        return self._rows[max(self._rows)]

    async def upsert(self, state: FeedingState) -> None:
        action = FeedAction.UPDATE if state.date in self._rows else FeedAction.INSERT
        self._rows[state.date] = state
        if self._feed is not None:
            self._feed.publish(FeedEvent(channel=FeedChannel.STATE, action=action, row=state.to_row()))


class MemoryHistoryBackend:
    def __init__(self, *, feed: EventFeed | None = None) -> None:
        # Newest first.
        self._records: list[FeedingRecord] = []
        self._feed = feed

    @property
    def records(self) -> list[FeedingRecord]:
        return list(self._records)

    def _announce(self, action: FeedAction, record: FeedingRecord) -> None:
        if self._feed is not None:
            self._feed.publish(FeedEvent(channel=FeedChannel.HISTORY, action=action, row=record.to_row()))

    async def fetch(self, limit: int) -> list[FeedingRecord]:
        return self._records[:limit]

    async def insert(self, record: FeedingRecord) -> None:
        self._records.insert(0, record)
        self._announce(FeedAction.INSERT, record)

    async def delete_most_recent(self, slot: FeedingSlot, date: str) -> bool:
        for index, record in enumerate(self._records):
            if record.slot == slot and record.date == date:
                del self._records[index]
                self._announce(FeedAction.DELETE, record)
                return True
        return False

    async def trim(self, limit: int) -> None:
        del self._records[limit:]
