"""Feeding history table endpoints."""

from __future__ import annotations

import logging

from pyfeeding._api._common import eq, expect_rows, in_list
from pyfeeding._transport import Transport
from pyfeeding.clock import utc_timestamp
from pyfeeding.config import FeedingConfig
from pyfeeding.models.feeding import FeedingRecord, FeedingSlot, parse_history_rows

_logger = logging.getLogger(__name__)


async def fetch_history(config: FeedingConfig, transport: Transport, limit: int) -> list[FeedingRecord]:
    """Fetch up to *limit* records, newest first."""
    payload = await transport.request(
        "GET",
        config.history_table,
        params={"select": "*", "order": "created_at.desc", "limit": str(limit)},
    )
    return parse_history_rows(expect_rows(payload, endpoint=config.history_table))


async def insert_record(config: FeedingConfig, transport: Transport, record: FeedingRecord) -> None:
    await transport.request(
        "POST",
        config.history_table,
        json_body=[record.to_row(created_at=utc_timestamp(), owner=config.owner)],
        prefer="return=minimal",
    )


async def delete_most_recent(
    config: FeedingConfig,
    transport: Transport,
    slot: FeedingSlot,
    date: str,
) -> bool:
    """Delete the newest record for *slot* on *date* by id.

    PostgREST cannot order a DELETE, so the id is looked up first.
    """
    payload = await transport.request(
        "GET",
        config.history_table,
        params={
            "select": "id",
            "slot": eq(slot.value),
            "date": eq(date),
            "order": "created_at.desc",
            "limit": "1",
        },
    )
    rows = expect_rows(payload, endpoint=config.history_table)
    if not rows or rows[0].get("id") is None:
        return False
    await transport.request(
        "DELETE",
        config.history_table,
        params={"id": eq(str(rows[0]["id"]))},
        prefer="return=minimal",
    )
    return True


async def trim_history(config: FeedingConfig, transport: Transport, limit: int) -> None:
    """Delete every record older than the newest *limit*."""
    payload = await transport.request(
        "GET",
        config.history_table,
        params={"select": "id", "order": "created_at.desc", "offset": str(limit)},
    )
    ids = [str(row["id"]) for row in expect_rows(payload, endpoint=config.history_table) if row.get("id") is not None]
    if not ids:
        return
    _logger.debug("Evicting %d history records beyond %d", len(ids), limit)
    await transport.request(
        "DELETE",
        config.history_table,
        params={"id": in_list(ids)},
        prefer="return=minimal",
    )
