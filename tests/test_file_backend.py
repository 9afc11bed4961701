from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pyfeeding.backends.file import FileHistoryBackend, FileStateStore
from pyfeeding.clock import FeedingClock
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState, FeedingStatus
from pyfeeding.state.history import HistoryStore
from pyfeeding.state.reconciler import Reconciler

TS = "2024-01-01T08:00:00.000Z"


def _record(date: str, minute: int, slot: FeedingSlot = FeedingSlot.MORNING) -> FeedingRecord:
    return FeedingRecord(slot=slot, caretaker="Dani", date=date, timestamp=f"{date}T08:{minute:02d}:00.000Z")


@pytest.mark.asyncio
async def test_state_upsert_get_and_latest(tmp_path: Path) -> None:
    store = FileStateStore(tmp_path, owner="user-1")
    older = FeedingState.blank("2024-01-01").with_status(FeedingStatus.completed(FeedingSlot.MORNING, "Dani", TS))

    await store.upsert(older)
    await store.upsert(FeedingState.blank("2024-01-02"))

    assert await store.get("2024-01-01") == older
    assert (await store.latest()) == FeedingState.blank("2024-01-02")
    assert await store.get("2024-01-03") is None
    rows = json.loads(store.path.read_text(encoding="utf-8"))
    assert rows["2024-01-01"]["owner"] == "user-1"
    assert "updated_at" in rows["2024-01-01"]


@pytest.mark.asyncio
async def test_state_upsert_replaces_whole_row(tmp_path: Path) -> None:
    store = FileStateStore(tmp_path)
    done = FeedingState.blank("2024-01-02").with_status(FeedingStatus.completed(FeedingSlot.EVENING, "Tats", TS))

    await store.upsert(done)
    await store.upsert(FeedingState.blank("2024-01-02"))

    assert (await store.get("2024-01-02")) == FeedingState.blank("2024-01-02")


@pytest.mark.asyncio
async def test_corrupted_files_read_as_empty(tmp_path: Path) -> None:
    state_store = FileStateStore(tmp_path)
    history = FileHistoryBackend(tmp_path)
    state_store.path.write_text("{not json", encoding="utf-8")
    history.path.write_text('{"slot": "morning"}', encoding="utf-8")

    assert await state_store.get("2024-01-02") is None
    assert await state_store.latest() is None
    assert await history.fetch(50) == []


@pytest.mark.asyncio
async def test_malformed_state_row_is_skipped_for_latest(tmp_path: Path) -> None:
    store = FileStateStore(tmp_path)
    store.path.write_text(
        json.dumps(
            {
                "2024-01-01": FeedingState.blank("2024-01-01").to_row(),
                "2024-01-02": {"slots": "broken"},
            }
        ),
        encoding="utf-8",
    )

    assert await store.get("2024-01-02") is None
    assert (await store.latest()) == FeedingState.blank("2024-01-01")


@pytest.mark.asyncio
async def test_history_insert_delete_and_trim(tmp_path: Path) -> None:
    backend = FileHistoryBackend(tmp_path)
    for minute in range(4):
        await backend.insert(_record("2024-01-02", minute))
    await backend.insert(_record("2024-01-02", 9, FeedingSlot.EVENING))

    assert await backend.delete_most_recent(FeedingSlot.MORNING, "2024-01-02") is True
    await backend.trim(3)
    records = await backend.fetch(50)

    assert [(r.slot, r.timestamp[-10:-8]) for r in records] == [
        (FeedingSlot.EVENING, "09"),
        (FeedingSlot.MORNING, "02"),
        (FeedingSlot.MORNING, "01"),
    ]
    assert await backend.delete_most_recent(FeedingSlot.MORNING, "2023-12-31") is False


@pytest.mark.asyncio
async def test_reconciler_over_file_backends(tmp_path: Path) -> None:
    clock = FeedingClock(time_zone="UTC", now_fn=lambda: datetime(2024, 1, 2, 7, 5, tzinfo=UTC))
    state_store = FileStateStore(tmp_path)
    history_backend = FileHistoryBackend(tmp_path)
    await state_store.upsert(
        FeedingState.blank("2024-01-01").with_status(FeedingStatus.completed(FeedingSlot.MORNING, "Dani", TS))
    )
    reconciler = Reconciler(state_store, HistoryStore(history_backend), clock=clock)

    state = await reconciler.load_state()
    state = await reconciler.mark_slot(state, FeedingSlot.MORNING, "Salem")

    assert state.date == "2024-01-02"
    assert [(r.date, r.caretaker) for r in await history_backend.fetch(50)] == [
        ("2024-01-02", "Salem"),
        ("2024-01-01", "Dani"),
    ]
    assert (await state_store.get("2024-01-02")) == state


@pytest.mark.asyncio
async def test_concurrent_writes_are_not_lost(tmp_path: Path) -> None:
    history = FileHistoryBackend(tmp_path)
    store = FileStateStore(tmp_path)

    await asyncio.gather(*(history.insert(_record("2024-01-02", minute)) for minute in range(20)))
    await asyncio.gather(*(store.upsert(FeedingState.blank(f"2024-01-{day:02d}")) for day in range(1, 11)))

    assert len(await history.fetch(50)) == 20
    assert set(json.loads(store.path.read_text(encoding="utf-8"))) == {f"2024-01-{day:02d}" for day in range(1, 11)}
