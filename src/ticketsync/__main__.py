"""
Main entrypoint: one-shot syncs or the long-running poller.

FastAPI runs separately under uvicorn.

Usage:
    python -m ticketsync sync                 # one ticket sync pass
    python -m ticketsync sync-logs [TICKET]   # staff logs (all, or one remote ticket)
    python -m ticketsync poll                 # scheduler loop
    uvicorn ticketsync.api.main:create_app --factory --port 8000
"""
import argparse
import asyncio
import logging
import sys

from ticketsync.config import get_settings

logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


async def _run_once(command: str, ticket_id=None) -> int:
    from ticketsync.db.engine import get_engine
    from ticketsync.ticketing.factory import build_sync_stack

    _, _, service = build_sync_stack(get_engine())
    if command == "sync":
        result = await service.sync_tickets()
    else:
        result = await service.sync_staff_logs(ticket_id=ticket_id)

    if not result.success:
        logger.error("Sync failed: %s", result.error)
        return 1
    logger.info(
        "Sync finished: %d processed, %d failed",
        result.records_processed,
        result.records_failed,
    )
    return 0


async def _run_poller() -> None:
    from ticketsync.db.engine import get_engine
    from ticketsync.scheduler.jobs import build_scheduler
    from ticketsync.ticketing.factory import build_sync_stack

    resolver, _, service = build_sync_stack(get_engine())
    scheduler = build_scheduler(service, resolver)
    scheduler.start()
    logger.info("Ticket poller started. Press Ctrl+C to stop.")

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="ticketsync")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="sync tickets once")
    logs = sub.add_parser("sync-logs", help="sync staff logs once")
    logs.add_argument("ticket_id", nargs="?", help="remote ticket id to scope to")
    sub.add_parser("poll", help="run the periodic poller")
    args = parser.parse_args(argv)

    if args.command == "poll":
        asyncio.run(_run_poller())
        return 0
    return asyncio.run(_run_once(args.command, getattr(args, "ticket_id", None)))


if __name__ == "__main__":
    sys.exit(main())
