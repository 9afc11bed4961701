"""Load, reset and repair the authoritative day state.

The reconciler is the only component that combines the state store, the
history and the reset policy. It never raises on store failures: reads
degrade to "absent", writes to a logged no-op, so callers always get a
well-formed :class:`FeedingState`.
"""

from __future__ import annotations

import logging

from pyfeeding._constants import DEFAULT_RESET_HOUR
from pyfeeding.clock import FeedingClock
from pyfeeding.exceptions import FeedingMalformedValueError, FeedingStoreError
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState, FeedingStatus
from pyfeeding.state.events import FeedAction, FeedEvent
from pyfeeding.state.history import HistoryStore
from pyfeeding.state.policy import ResetPolicy
from pyfeeding.state.store import StateStore

_logger = logging.getLogger(__name__)


class Reconciler:
    """Orchestrates load, reset check, archive, history merge and persist."""

    def __init__(
        self,
        state_store: StateStore,
        history: HistoryStore,
        *,
        clock: FeedingClock | None = None,
        reset_hour: int = DEFAULT_RESET_HOUR,
    ) -> None:
        self._store = state_store
        self._history = history
        self._clock = clock or FeedingClock()
        self._policy = ResetPolicy(self._clock, reset_hour=reset_hour)

    @property
    def clock(self) -> FeedingClock:
        return self._clock

    # ------------------------------------------------------------------
    # Store access (degrading)
    # ------------------------------------------------------------------

    async def _read_candidate(self, today: str) -> FeedingState | None:
        try:
            state = await self._store.get(today)
            if state is None:
                # No row for today yet: the previous day's row decides
                # whether a reset (and archive) is due.
                state = await self._store.latest()
        except FeedingStoreError:
            _logger.warning("State read failed; starting from a blank state", exc_info=True)
            return None
        return state

    async def save_state(self, state: FeedingState) -> None:
        """Upsert *state*; failures are logged, never raised."""
        try:
            await self._store.upsert(state)
        except FeedingStoreError:
            _logger.warning("State write failed for %s", state.date, exc_info=True)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load_state(self) -> FeedingState:
        today = self._clock.today_id()
        candidate = await self._read_candidate(today)
        if candidate is None:
            candidate = FeedingState.blank(today)

        if self._policy.should_reset(candidate.date):
            archived = await self._history.archive(candidate.completed_records())
            _logger.info(
                "Daily reset: %s replaced by blank %s (%d feedings archived)",
                candidate.date,
                today,
                archived,
            )
            # Not persisted here; the next explicit save writes today's row.
            return FeedingState.blank(today)

        working, repaired = self._merge_history(candidate, await self._history.for_date(candidate.date))
        if repaired:
            _logger.debug("Repairing stored state for %s from history", working.date)
            await self.save_state(working)
        return working

    @staticmethod
    def _merge_history(state: FeedingState, records: list[FeedingRecord]) -> tuple[FeedingState, bool]:
        """Mark every slot with a history record for the state's date as done.

        History is newest first, so the newest record for a slot wins.
        """
        working = state
        seen: set[FeedingSlot] = set()
        for record in records:
            if record.date != state.date or record.slot in seen:
                continue
            seen.add(record.slot)
            status = record.to_status()
            if working.status(record.slot) != status:
                working = working.with_status(status)
        return working, working != state

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def mark_slot(self, state: FeedingState, slot: FeedingSlot, caretaker: str) -> FeedingState:
        """Mark *slot* done by *caretaker*, save, and record it in the history."""
        name = caretaker.strip()
        if not name:
            raise ValueError("caretaker must be a non-empty name")
        timestamp = self._clock.timestamp()
        updated = state.with_status(FeedingStatus.completed(slot, name, timestamp))
        await self.save_state(updated)
        await self._history.append(FeedingRecord(slot=slot, caretaker=name, date=updated.date, timestamp=timestamp))
        return updated

    async def unmark_slot(self, state: FeedingState, slot: FeedingSlot) -> FeedingState:
        """Mark *slot* pending again and drop its newest history record."""
        updated = state.with_status(FeedingStatus.pending(slot))
        await self.save_state(updated)
        await self._history.remove_most_recent(slot, updated.date)
        return updated

    async def manual_reset(self) -> FeedingState:
        """Persist and return a blank state for today.

        Unlike the automatic daily reset, current progress is discarded
        rather than archived. Today's history records are left in place,
        so the next :meth:`load_state` marks those slots done again from
        history; use :meth:`unmark_slot` to undo a feeding for good.
        """
        state = FeedingState.blank(self._clock.today_id())
        await self.save_state(state)
        return state

    async def history(self) -> list[FeedingRecord]:
        return await self._history.list()

    # ------------------------------------------------------------------
    # Feed payloads
    # ------------------------------------------------------------------

    def apply_state_event(self, event: FeedEvent) -> FeedingState | None:
        """Parse a state-channel event for today into a state.

        Returns ``None`` for deletes, other dates or malformed rows.
        """
        if event.action == FeedAction.DELETE or event.date != self._clock.today_id():
            return None
        try:
            return FeedingState.from_row(event.row)
        except FeedingMalformedValueError:
            _logger.warning("Ignoring malformed state event: %r", event.row)
            return None

    def apply_history_event(self, event: FeedEvent) -> FeedingRecord | None:
        try:
            return FeedingRecord.from_row(event.row)
        except FeedingMalformedValueError:
            _logger.warning("Ignoring malformed history event: %r", event.row)
            return None
