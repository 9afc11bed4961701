#!/usr/bin/env python3
"""Inspect and update the shared feeding state from a terminal.

Configuration comes from ``FEEDING_*`` environment variables (see
``FeedingConfig.from_env``).

Usage
-----
::

    export FEEDING_BACKEND=file FEEDING_DATA_DIR=~/.feeding
    python scripts/feeding_status.py show
    python scripts/feeding_status.py mark morning --caretaker Dani
    python scripts/feeding_status.py unmark morning
    python scripts/feeding_status.py history --json
    python scripts/feeding_status.py reset
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyfeeding import (  # noqa: E402
    CARETAKER_NAMES,
    FeedingClient,
    FeedingConfig,
    FeedingError,
    FeedingRecord,
    FeedingSlot,
    FeedingState,
)


def _format_state(state: FeedingState) -> list[str]:
    lines = [f"Feeding state for {state.date}"]
    for slot in FeedingSlot:
        status = state.status(slot)
        if status.done:
            lines.append(f"  {slot.value:<8} done by {status.caretaker} at {status.timestamp}")
        else:
            lines.append(f"  {slot.value:<8} pending")
    return lines


def _format_history(records: list[FeedingRecord]) -> list[str]:
    if not records:
        return ["No feedings recorded yet."]
    return [f"  {r.date} {r.slot.value:<8} {r.caretaker:<10} {r.timestamp}" for r in records]


def _emit(args: argparse.Namespace, payload: Any, lines: list[str]) -> None:
    if args.json_mode:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print("\n".join(lines))


async def main() -> int:
    parser = argparse.ArgumentParser(description="Show or update the shared feeding state.")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print today's state")
    mark = sub.add_parser("mark", help="Mark a slot as done")
    mark.add_argument("slot", choices=[slot.value for slot in FeedingSlot])
    mark.add_argument("--caretaker", required=True, help=f"Who fed (e.g. {', '.join(CARETAKER_NAMES[:3])})")
    unmark = sub.add_parser("unmark", help="Undo the latest feeding of a slot")
    unmark.add_argument("slot", choices=[slot.value for slot in FeedingSlot])
    sub.add_parser("reset", help="Blank today's state without archiving it")
    sub.add_parser("history", help="Print the feeding history, newest first")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = FeedingConfig.from_env()
        async with FeedingClient(config) as client:
            if args.command == "history":
                records = await client.get_history()
                _emit(args, [r.model_dump(mode="json") for r in records], _format_history(records))
                return 0

            if args.command == "reset":
                state = await client.manual_reset()
            else:
                state = await client.load_state()
                if args.command == "mark":
                    state = await client.mark_slot(state, args.slot, args.caretaker)
                elif args.command == "unmark":
                    state = await client.unmark_slot(state, args.slot)
            _emit(args, state.to_row(), _format_state(state))
    except (FeedingError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
