"""High-level async client for the feeding tracker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pyfeeding._mqtt import FeedMqttRuntime, MqttFeedSettings
from pyfeeding._transport import PostgrestTransport
from pyfeeding.backends.file import FileHistoryBackend, FileStateStore
from pyfeeding.backends.memory import MemoryHistoryBackend, MemoryStateStore
from pyfeeding.backends.rest import RestHistoryBackend, RestStateStore
from pyfeeding.clock import FeedingClock
from pyfeeding.config import FeedingConfig
from pyfeeding.exceptions import FeedingError
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState
from pyfeeding.state.events import EventFeed, FeedAction, FeedChannel, FeedEvent, Subscription
from pyfeeding.state.history import HistoryStore
from pyfeeding.state.reconciler import Reconciler
from pyfeeding.state.store import HistoryBackend, StateStore

_logger = logging.getLogger(__name__)


class FeedingClient:
    """Async client for the shared feeding state.

    Usage::

        async with FeedingClient(FeedingConfig.from_env()) as client:
            state = await client.load_state()
            state = await client.mark_slot(state, FeedingSlot.MORNING, "Dani")

    Stores are built from *config* unless *state_store* and
    *history_backend* are given.
    """

    def __init__(
        self,
        config: FeedingConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        state_store: StateStore | None = None,
        history_backend: HistoryBackend | None = None,
        clock: FeedingClock | None = None,
        feed: EventFeed | None = None,
    ) -> None:
        self._config = config or FeedingConfig()
        self._config.validate()
        self._external_session = session is not None
        self._http_session = session
        self._state_store = state_store
        self._history_backend = history_backend
        self._clock = clock or FeedingClock(time_zone=self._config.time_zone)
        self._feed = feed or EventFeed()
        self._reconciler: Reconciler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._mqtt_runtime: FeedMqttRuntime | None = None

    @property
    def config(self) -> FeedingConfig:
        return self._config

    @property
    def clock(self) -> FeedingClock:
        return self._clock

    @property
    def feed(self) -> EventFeed:
        return self._feed

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FeedingClient:
        self._loop = asyncio.get_running_loop()
        state_store, history_backend = self._build_backends()
        history = HistoryStore(history_backend, limit=self._config.history_limit)
        self._reconciler = Reconciler(
            state_store,
            history,
            clock=self._clock,
            reset_hour=self._config.reset_hour,
        )
        await self._start_mqtt()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self._stop_mqtt()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._reconciler = None
        self._loop = None

    def _build_backends(self) -> tuple[StateStore, HistoryBackend]:
        config = self._config
        state_store = self._state_store
        history_backend = self._history_backend

        if config.backend == "rest" and (state_store is None or history_backend is None):
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = PostgrestTransport(config, self._http_session)
            state_store = state_store or RestStateStore(config, transport)
            history_backend = history_backend or RestHistoryBackend(config, transport)
        elif config.backend == "file" and config.data_dir:
            state_store = state_store or FileStateStore(config.data_dir, owner=config.owner)
            history_backend = history_backend or FileHistoryBackend(config.data_dir, owner=config.owner)
        else:
            state_store = state_store or MemoryStateStore(feed=self._feed)
            history_backend = history_backend or MemoryHistoryBackend(feed=self._feed)

        _logger.debug(
            "Using %s state store and %s history backend",
            type(state_store).__name__,
            type(history_backend).__name__,
        )
        return state_store, history_backend

    async def _start_mqtt(self) -> None:
        if not self._config.mqtt_enabled or self._loop is None:
            return
        try:
            settings = MqttFeedSettings.from_config(self._config)
            runtime = FeedMqttRuntime(loop=self._loop, on_event=self._feed.publish, logger=_logger)
            await self._loop.run_in_executor(None, runtime.start, settings)
            self._mqtt_runtime = runtime
        except Exception:
            # The feed is advisory; the client keeps working without it.
            _logger.warning("MQTT feed start failed", exc_info=True)

    async def _stop_mqtt(self) -> None:
        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is None or self._loop is None:
            return
        try:
            await self._loop.run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("MQTT feed stop failed", exc_info=True)

    def _require_reconciler(self) -> Reconciler:
        if self._reconciler is None:
            raise FeedingError("Client not initialized. Use 'async with FeedingClient(...) as client:'")
        return self._reconciler

    # ------------------------------------------------------------------
    # State and history
    # ------------------------------------------------------------------

    async def load_state(self) -> FeedingState:
        """Return today's authoritative state, applying the daily reset."""
        return await self._require_reconciler().load_state()

    async def save_state(self, state: FeedingState) -> None:
        await self._require_reconciler().save_state(state)

    async def mark_slot(self, state: FeedingState, slot: FeedingSlot | str, caretaker: str) -> FeedingState:
        return await self._require_reconciler().mark_slot(state, FeedingSlot(slot), caretaker)

    async def unmark_slot(self, state: FeedingState, slot: FeedingSlot | str) -> FeedingState:
        return await self._require_reconciler().unmark_slot(state, FeedingSlot(slot))

    async def manual_reset(self) -> FeedingState:
        return await self._require_reconciler().manual_reset()

    async def get_history(self) -> list[FeedingRecord]:
        return await self._require_reconciler().history()

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def subscribe_state(self, callback: Callable[[FeedingState], None]) -> Subscription:
        """Call *callback* with today's state whenever its row changes."""
        reconciler = self._require_reconciler()

        def _on_event(event: FeedEvent) -> None:
            state = reconciler.apply_state_event(event)
            if state is not None:
                callback(state)

        return self._feed.subscribe(FeedChannel.STATE, _on_event, date=self._clock.today_id)

    def subscribe_history(self, callback: Callable[[FeedAction, FeedingRecord], None]) -> Subscription:
        """Call *callback* with each history row change that carries a full record."""
        reconciler = self._require_reconciler()

        def _on_event(event: FeedEvent) -> None:
            record = reconciler.apply_history_event(event)
            if record is not None:
                callback(event.action, record)

        return self._feed.subscribe(FeedChannel.HISTORY, _on_event)
