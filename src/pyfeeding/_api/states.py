"""Feeding state table endpoints."""

from __future__ import annotations

from pyfeeding._api._common import eq, expect_rows
from pyfeeding._transport import Transport
from pyfeeding.clock import utc_timestamp
from pyfeeding.config import FeedingConfig
from pyfeeding.models.feeding import FeedingState


async def fetch_state(config: FeedingConfig, transport: Transport, date: str) -> FeedingState | None:
    """Fetch the state row for *date*."""
    payload = await transport.request(
        "GET",
        config.state_table,
        params={"select": "*", "date": eq(date), "limit": "1"},
    )
    rows = expect_rows(payload, endpoint=config.state_table)
    return FeedingState.from_row(rows[0]) if rows else None


async def fetch_latest_state(config: FeedingConfig, transport: Transport) -> FeedingState | None:
    """Fetch the state row with the greatest date."""
    payload = await transport.request(
        "GET",
        config.state_table,
        params={"select": "*", "order": "date.desc", "limit": "1"},
    )
    rows = expect_rows(payload, endpoint=config.state_table)
    return FeedingState.from_row(rows[0]) if rows else None


async def upsert_state(config: FeedingConfig, transport: Transport, state: FeedingState) -> None:
    """Insert or replace the row for ``state.date``."""
    await transport.request(
        "POST",
        config.state_table,
        params={"on_conflict": "date"},
        json_body=[state.to_row(updated_at=utc_timestamp(), owner=config.owner)],
        prefer="resolution=merge-duplicates,return=minimal",
    )
