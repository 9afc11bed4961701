"""JSON file backends.

State rows are kept in one JSON object keyed by date, history in one
JSON array (newest first). Files are replaced atomically on write.
Content that cannot be parsed is treated as empty, so a corrupted file
costs the stored value but never a failed load.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pyfeeding._constants import HISTORY_FILE_NAME, STATE_FILE_NAME
from pyfeeding.clock import utc_timestamp
from pyfeeding.exceptions import FeedingMalformedValueError, FeedingStoreError
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, FeedingState, parse_history_rows

_logger = logging.getLogger(__name__)


def _read_json(path: Path, fallback: Any) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return fallback
    except OSError as exc:
        raise FeedingStoreError(f"Cannot read {path}: {exc}") from exc
    if not text.strip():
        return fallback
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        _logger.warning("Ignoring unparseable JSON in %s", path)
        return fallback


def _write_json(path: Path, value: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(value, handle, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise FeedingStoreError(f"Cannot write {path}: {exc}") from exc


async def _run(func: Any, *args: Any) -> Any:
    return await asyncio.get_running_loop().run_in_executor(None, func, *args)


class FileStateStore:
    def __init__(self, data_dir: str | Path, *, owner: str | None = None) -> None:
        self._path = Path(data_dir) / STATE_FILE_NAME
        self._owner = owner
        # Serializes read-modify-write cycles within this process.
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_rows(self) -> dict[str, Any]:
        rows = _read_json(self._path, {})
        if not isinstance(rows, dict):
            _logger.warning("State file %s is not an object, treating as empty", self._path)
            return {}
        return rows

    def _parse(self, row: Any) -> FeedingState | None:
        try:
            return FeedingState.from_row(row)
        except FeedingMalformedValueError:
            _logger.warning("Ignoring malformed state row in %s: %r", self._path, row)
            return None

    async def get(self, date: str) -> FeedingState | None:
        rows = await _run(self._load_rows)
        row = rows.get(date)
        return None if row is None else self._parse(row)

    async def latest(self) -> FeedingState | None:
        rows = await _run(self._load_rows)
        for date in sorted(rows, reverse=True):
            state = self._parse(rows[date])
            if state is not None:
                return state
        return None

    def _upsert_sync(self, state: FeedingState) -> None:
        rows = self._load_rows()
        rows[state.date] = state.to_row(updated_at=utc_timestamp(), owner=self._owner)
        _write_json(self._path, rows)

    async def upsert(self, state: FeedingState) -> None:
        async with self._write_lock:
            await _run(self._upsert_sync, state)


class FileHistoryBackend:
    def __init__(self, data_dir: str | Path, *, owner: str | None = None) -> None:
        self._path = Path(data_dir) / HISTORY_FILE_NAME
        self._owner = owner
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_rows(self) -> list[Any]:
        rows = _read_json(self._path, [])
        if not isinstance(rows, list):
            _logger.warning("History file %s is not a list, treating as empty", self._path)
            return []
        return rows

    async def fetch(self, limit: int) -> list[FeedingRecord]:
        rows = await _run(self._load_rows)
        return parse_history_rows(rows)[:limit]

    def _insert_sync(self, record: FeedingRecord) -> None:
        rows = self._load_rows()
        rows.insert(0, record.to_row(created_at=utc_timestamp(), owner=self._owner))
        _write_json(self._path, rows)

    async def insert(self, record: FeedingRecord) -> None:
        async with self._write_lock:
            await _run(self._insert_sync, record)

    def _delete_most_recent_sync(self, slot: FeedingSlot, date: str) -> bool:
        rows = self._load_rows()
        for index, row in enumerate(rows):
            if isinstance(row, dict) and row.get("slot") == slot.value and row.get("date") == date:
                del rows[index]
                _write_json(self._path, rows)
                return True
        return False

    async def delete_most_recent(self, slot: FeedingSlot, date: str) -> bool:
        async with self._write_lock:
            return bool(await _run(self._delete_most_recent_sync, slot, date))

    def _trim_sync(self, limit: int) -> None:
        rows = self._load_rows()
        if len(rows) > limit:
            _write_json(self._path, rows[:limit])

    async def trim(self, limit: int) -> None:
        async with self._write_lock:
            await _run(self._trim_sync, limit)
