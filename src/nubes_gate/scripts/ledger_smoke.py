#!/usr/bin/env python3
"""
Manual round trip against the live Hive ledger.

Posts a door event for a test user (unless --read-only), waits for inclusion,
then prints the most recent door events found in the service account's
history. Uses HIVE_USERNAME / HIVE_POSTING_KEY from the environment or .env.

Typical usage:
  python -m nubes_gate.scripts.ledger_smoke --user testuser --limit 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from nubes_gate.core.errors import LedgerFault
from nubes_gate.core.settings import settings
from nubes_gate.services.hive import get_hive_client
from nubes_gate.services.ledger import get_event_ledger


def say(msg: str) -> None:
    print(f"[ledger-smoke] {msg}")


def fail(msg: str) -> None:
    print(f"[ledger-smoke][FAIL] {msg}", file=sys.stderr)


async def run(user: str, limit: int, wait_seconds: float, read_only: bool) -> int:
    ledger = get_event_ledger()
    say(f"Account: @{settings.hive_username}")
    say(f"Custom JSON ID: {ledger.custom_json_id}")

    try:
        if not read_only:
            receipt = await ledger.append(user)
            say(f"Transaction ID: {receipt.transaction_id}")
            say(f"Block Number: {receipt.block_num}")
            say(f"Payload: {receipt.event.to_json()}")
            say(f"Waiting {wait_seconds:g}s for the transaction to be included...")
            await asyncio.sleep(wait_seconds)

        events = await ledger.query(limit)
    except LedgerFault as fault:
        fail(fault.reason)
        return 1
    finally:
        await get_hive_client().close()

    if not events:
        say("No door events found on the blockchain yet.")
        return 0

    say(f"Found {len(events)} door events:")
    for position, event in enumerate(events, start=1):
        print(f"{position}. {event.message}")
        print(f"   User: @{event.user}")
        print(f"   Time: {event.timestamp}")
        print(f"   Block: {event.block_num if event.block_num is not None else 'N/A'}")
    return 0


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Post and read back door events on Hive")
    p.add_argument("--user", default="testuser", help="User to attribute the event to")
    p.add_argument("--limit", type=int, default=5, help="Events to fetch (default: %(default)s)")
    p.add_argument("--wait", type=float, default=5.0,
                   help="Seconds to wait after posting (default: %(default)s)")
    p.add_argument("--read-only", action="store_true", help="Only fetch recent events")
    return p.parse_args()


def main() -> int:
    args = parse_args()
    return asyncio.run(run(args.user, args.limit, args.wait, args.read_only))


if __name__ == "__main__":
    sys.exit(main())
