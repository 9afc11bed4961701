"""REST backends over PostgREST-style tables."""

from __future__ import annotations

from pyfeeding._api import history as _history_api
from pyfeeding._api import states as _states_api
from pyfeeding._transport import Transport
from pyfeeding.config import FeedingConfig
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState


class RestStateStore:
    def __init__(self, config: FeedingConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    async def get(self, date: str) -> FeedingState | None:
        return await _states_api.fetch_state(self._config, self._transport, date)

    async def latest(self) -> FeedingState | None:
        return await _states_api.fetch_latest_state(self._config, self._transport)

    async def upsert(self, state: FeedingState) -> None:
        await _states_api.upsert_state(self._config, self._transport, state)


class RestHistoryBackend:
    def __init__(self, config: FeedingConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    async def fetch(self, limit: int) -> list[FeedingRecord]:
        return await _history_api.fetch_history(self._config, self._transport, limit)

    async def insert(self, record: FeedingRecord) -> None:
        await _history_api.insert_record(self._config, self._transport, record)

    async def delete_most_recent(self, slot: FeedingSlot, date: str) -> bool:
        return await _history_api.delete_most_recent(self._config, self._transport, slot, date)

    async def trim(self, limit: int) -> None:
        await _history_api.trim_history(self._config, self._transport, limit)
