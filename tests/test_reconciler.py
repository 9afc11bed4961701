from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pyfeeding.backends.memory import MemoryHistoryBackend, MemoryStateStore
from pyfeeding.clock import FeedingClock
from pyfeeding.exceptions import FeedingStoreError
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState, FeedingStatus
from pyfeeding.state.events import FeedAction, FeedChannel, FeedEvent
from pyfeeding.state.history import HistoryStore
from pyfeeding.state.reconciler import Reconciler


class _Now:
    """Settable wall clock."""

    def __init__(self, value: datetime) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value

    def advance(self, **kwargs: float) -> None:
        self.value += timedelta(**kwargs)


class _UnavailableStateStore:
    async def get(self, date: str) -> FeedingState | None:
        raise FeedingStoreError("offline")

    async def latest(self) -> FeedingState | None:
        raise FeedingStoreError("offline")

    async def upsert(self, state: FeedingState) -> None:
        raise FeedingStoreError("offline")


def _build(now: datetime, *, reset_hour: int = 7) -> tuple[Reconciler, MemoryStateStore, MemoryHistoryBackend, _Now]:
    wall = _Now(now)
    store = MemoryStateStore()
    backend = MemoryHistoryBackend()
    reconciler = Reconciler(
        store,
        HistoryStore(backend),
        clock=FeedingClock(time_zone="UTC", now_fn=wall),
        reset_hour=reset_hour,
    )
    return reconciler, store, backend, wall


def _yesterday_fully_fed() -> FeedingState:
    return (
        FeedingState.blank("2024-01-01")
        .with_status(FeedingStatus.completed(FeedingSlot.MORNING, "Dani", "2024-01-01T08:00:00.000Z"))
        .with_status(FeedingStatus.completed(FeedingSlot.EVENING, "Salem", "2024-01-01T19:00:00.000Z"))
    )


@pytest.mark.asyncio
async def test_load_without_any_stored_state_is_blank_today() -> None:
    reconciler, store, _, _ = _build(datetime(2024, 1, 2, 10, tzinfo=UTC))

    state = await reconciler.load_state()

    assert state == FeedingState.blank("2024-01-02")
    assert await store.get("2024-01-02") is None


@pytest.mark.asyncio
async def test_before_reset_hour_previous_day_is_still_shown() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 6, 30, tzinfo=UTC))
    await store.upsert(_yesterday_fully_fed())

    state = await reconciler.load_state()

    assert state == _yesterday_fully_fed()
    assert backend.records == []
    assert await store.get("2024-01-02") is None


@pytest.mark.asyncio
async def test_at_reset_hour_previous_day_is_archived_and_blanked() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 7, 0, tzinfo=UTC))
    await store.upsert(_yesterday_fully_fed())

    state = await reconciler.load_state()

    assert state == FeedingState.blank("2024-01-02")
    assert {(r.slot, r.date, r.caretaker) for r in backend.records} == {
        (FeedingSlot.MORNING, "2024-01-01", "Dani"),
        (FeedingSlot.EVENING, "2024-01-01", "Salem"),
    }
    # The blank state is only written by the next explicit save.
    assert await store.get("2024-01-02") is None


@pytest.mark.asyncio
async def test_repeated_reset_does_not_duplicate_archive() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 9, 0, tzinfo=UTC))
    await store.upsert(_yesterday_fully_fed())

    await reconciler.load_state()
    await reconciler.load_state()

    assert len(backend.records) == 2


@pytest.mark.asyncio
async def test_reset_hour_is_configurable() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 7, 30, tzinfo=UTC), reset_hour=8)
    await store.upsert(_yesterday_fully_fed())

    state = await reconciler.load_state()

    assert state.date == "2024-01-01"
    assert backend.records == []


@pytest.mark.asyncio
async def test_history_is_source_of_truth_and_repairs_store() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 12, tzinfo=UTC))
    await store.upsert(FeedingState.blank("2024-01-02"))
    await backend.insert(
        FeedingRecord(slot=FeedingSlot.MORNING, caretaker="Leonyx", date="2024-01-02", timestamp="2024-01-02T08:10:00.000Z")
    )

    state = await reconciler.load_state()

    morning = state.status(FeedingSlot.MORNING)
    assert morning.done is True
    assert morning.caretaker == "Leonyx"
    assert morning.timestamp == "2024-01-02T08:10:00.000Z"
    assert state.status(FeedingSlot.EVENING).done is False
    assert await store.get("2024-01-02") == state


@pytest.mark.asyncio
async def test_history_for_other_dates_is_not_merged() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 12, tzinfo=UTC))
    await store.upsert(FeedingState.blank("2024-01-02"))
    await backend.insert(
        FeedingRecord(slot=FeedingSlot.EVENING, caretaker="Tats", date="2024-01-01", timestamp="2024-01-01T19:00:00.000Z")
    )

    state = await reconciler.load_state()

    assert state.is_blank


@pytest.mark.asyncio
async def test_mark_then_load_round_trip() -> None:
    reconciler, _, backend, _ = _build(datetime(2024, 1, 2, 8, 15, tzinfo=UTC))

    state = await reconciler.load_state()
    marked = await reconciler.mark_slot(state, FeedingSlot.MORNING, "  Garnet ")
    loaded = await reconciler.load_state()

    morning = loaded.status(FeedingSlot.MORNING)
    assert morning.done is True
    assert morning.caretaker == "Garnet"
    assert morning.timestamp == "2024-01-02T08:15:00.000Z"
    assert loaded == marked
    assert [r.key for r in backend.records] == [(FeedingSlot.MORNING, "2024-01-02", "2024-01-02T08:15:00.000Z")]


@pytest.mark.asyncio
async def test_mark_requires_a_caretaker() -> None:
    reconciler, _, _, _ = _build(datetime(2024, 1, 2, 8, tzinfo=UTC))

    with pytest.raises(ValueError):
        await reconciler.mark_slot(FeedingState.blank("2024-01-02"), FeedingSlot.MORNING, "  ")


@pytest.mark.asyncio
async def test_unmark_removes_only_newest_record_for_slot_and_date() -> None:
    reconciler, _, backend, wall = _build(datetime(2024, 1, 2, 8, tzinfo=UTC))
    yesterday = FeedingRecord(
        slot=FeedingSlot.MORNING, caretaker="Siahh", date="2024-01-01", timestamp="2024-01-01T08:00:00.000Z"
    )
    await backend.insert(yesterday)

    state = await reconciler.load_state()
    state = await reconciler.mark_slot(state, FeedingSlot.EVENING, "Yose")
    state = await reconciler.mark_slot(state, FeedingSlot.MORNING, "Dani")
    wall.advance(minutes=5)
    state = await reconciler.mark_slot(state, FeedingSlot.MORNING, "Salem")

    state = await reconciler.unmark_slot(state, FeedingSlot.MORNING)

    assert state.status(FeedingSlot.MORNING) == FeedingStatus.pending(FeedingSlot.MORNING)
    remaining = [(r.slot, r.date, r.caretaker) for r in backend.records]
    assert remaining == [
        (FeedingSlot.MORNING, "2024-01-02", "Dani"),
        (FeedingSlot.EVENING, "2024-01-02", "Yose"),
        (FeedingSlot.MORNING, "2024-01-01", "Siahh"),
    ]


@pytest.mark.asyncio
async def test_unmark_single_feeding_stays_pending_after_reload() -> None:
    reconciler, _, backend, _ = _build(datetime(2024, 1, 2, 8, tzinfo=UTC))

    state = await reconciler.mark_slot(await reconciler.load_state(), FeedingSlot.MORNING, "Dani")
    await reconciler.unmark_slot(state, FeedingSlot.MORNING)
    loaded = await reconciler.load_state()

    assert loaded.is_blank
    assert backend.records == []


@pytest.mark.asyncio
async def test_manual_reset_discards_without_archiving() -> None:
    reconciler, store, backend, _ = _build(datetime(2024, 1, 2, 13, tzinfo=UTC))
    state = await reconciler.load_state()
    state = await reconciler.mark_slot(state, FeedingSlot.MORNING, "Dani")
    state = await reconciler.mark_slot(state, FeedingSlot.EVENING, "Salem")
    archived_before = list(backend.records)

    reset = await reconciler.manual_reset()

    assert reset == FeedingState.blank("2024-01-02")
    assert await store.get("2024-01-02") == reset
    assert backend.records == archived_before


@pytest.mark.asyncio
async def test_unavailable_state_store_degrades_to_blank() -> None:
    backend = MemoryHistoryBackend()
    reconciler = Reconciler(
        _UnavailableStateStore(),
        HistoryStore(backend),
        clock=FeedingClock(time_zone="UTC", now_fn=lambda: datetime(2024, 1, 2, 9, tzinfo=UTC)),
    )

    state = await reconciler.load_state()
    marked = await reconciler.mark_slot(state, FeedingSlot.MORNING, "Dani")
    await reconciler.save_state(marked)

    assert state == FeedingState.blank("2024-01-02")
    assert marked.status(FeedingSlot.MORNING).done is True
    assert len(backend.records) == 1


@pytest.mark.asyncio
async def test_apply_state_event_only_accepts_today() -> None:
    reconciler, _, _, _ = _build(datetime(2024, 1, 2, 9, tzinfo=UTC))
    today = FeedingState.blank("2024-01-02").with_status(
        FeedingStatus.completed(FeedingSlot.MORNING, "Dani", "2024-01-02T08:00:00.000Z")
    )

    applied = reconciler.apply_state_event(
        FeedEvent(channel=FeedChannel.STATE, action=FeedAction.UPDATE, row=today.to_row())
    )
    other_day = reconciler.apply_state_event(
        FeedEvent(channel=FeedChannel.STATE, action=FeedAction.UPDATE, row=_yesterday_fully_fed().to_row())
    )
    deleted = reconciler.apply_state_event(
        FeedEvent(channel=FeedChannel.STATE, action=FeedAction.DELETE, row=today.to_row())
    )

    assert applied == today
    assert other_day is None
    assert deleted is None


@pytest.mark.asyncio
async def test_apply_history_event_ignores_partial_rows() -> None:
    reconciler, _, _, _ = _build(datetime(2024, 1, 2, 9, tzinfo=UTC))

    assert reconciler.apply_history_event(
        FeedEvent(channel=FeedChannel.HISTORY, action=FeedAction.DELETE, row={"id": 4})
    ) is None


@pytest.mark.asyncio
async def test_manual_reset_is_undone_by_history_on_next_load() -> None:
    reconciler, _, _, _ = _build(datetime(2024, 1, 2, 13, tzinfo=UTC))
    await reconciler.mark_slot(await reconciler.load_state(), FeedingSlot.MORNING, "Dani")

    await reconciler.manual_reset()
    reloaded = await reconciler.load_state()

    assert reloaded.status(FeedingSlot.MORNING).caretaker == "Dani"
    assert reloaded.status(FeedingSlot.EVENING).done is False
