"""
Capture real ticketing API responses and save them as test fixtures.

Run this script against a reachable ticketing API with a configured
credential (TICKETING_API_BASE_URL / TICKETING_API_KEY or the config row):

    python scripts/capture_fixtures.py [--limit N]

Outputs (overwrite tests/fixtures/):
    remote_tickets.json      — from GET /tickets
    remote_staff_logs.json   — from GET /tickets/staff-logs
    remote_stats.json        — from GET /tickets/stats

These fixtures are used by the normalizer and sync tests so they exercise
real response shapes, not hand-crafted guesses. Scrub requester emails and
names before committing.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ticketsync.db.engine import get_engine
from ticketsync.ticketing.factory import build_sync_stack

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"


def _save(name: str, data: object) -> None:
    path = FIXTURES_DIR / name
    path.write_text(json.dumps(data, indent=2, default=str))
    print(f"  Saved {path} ({path.stat().st_size} bytes)")


async def _capture(limit: int) -> int:
    _, client, _ = build_sync_stack(get_engine())

    calls = [
        ("remote_tickets.json", client.get_tickets(limit=limit, sort_by="updated_at", sort_direction="desc")),
        ("remote_staff_logs.json", client.get_staff_logs(limit=limit)),
        ("remote_stats.json", client.get_ticket_stats()),
    ]
    failures = 0
    for name, call in calls:
        result = await call
        if not result.ok:
            print(f"  Failed {name}: {result.error}")
            failures += 1
            continue
        _save(name, result.data)
    return 1 if failures else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Capture real ticketing API fixtures")
    parser.add_argument("--limit", type=int, default=5, help="records per list endpoint")
    args = parser.parse_args()

    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    sys.exit(asyncio.run(_capture(args.limit)))


if __name__ == "__main__":
    main()
