"""
APScheduler job for periodic ticket polling.

The sync layer itself holds no timer; this job is the poller. It runs a
ticket sync followed by a full staff-log sync so that logs for tickets
fetched in the same pass link up immediately.

The interval comes from the active config row (sync_interval_minutes),
falling back to POLL_INTERVAL_MINUTES. A row with sync_enabled=False turns
each run into a no-op without removing the job.
"""
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ticketsync.config import get_settings

logger = logging.getLogger(__name__)


def build_scheduler(service, resolver) -> AsyncIOScheduler:
    """
    Create and configure the APScheduler.

    Args:
        service: TicketSyncService to run on each tick.
        resolver: ConfigResolver for the interval and the enabled flag.

    Returns:
        Configured AsyncIOScheduler (not yet started).
    """
    settings = get_settings()
    config = resolver.get_active_config()
    interval = (
        config.sync_interval_minutes
        if config is not None and config.sync_interval_minutes
        else settings.poll_interval_minutes
    )

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _poll_sync,
        trigger="interval",
        minutes=interval,
        id="ticket_poll",
        replace_existing=True,
        max_instances=1,
        kwargs={"service": service, "resolver": resolver},
    )
    return scheduler


async def _poll_sync(service, resolver) -> None:
    """
    One poll: tickets, then staff logs.

    Never raises, so the scheduler keeps ticking.
    """
    try:
        config = resolver.get_active_config()
        if config is not None and not config.sync_enabled:
            logger.info("Ticket sync disabled in config; skipping poll")
            return

        logger.info("Ticket poll starting at %s", datetime.utcnow().isoformat())
        tickets = await service.sync_tickets()
        if not tickets.success:
            logger.error("Ticket poll failed: %s", tickets.error)
            return

        logs = await service.sync_staff_logs()
        if not logs.success:
            logger.error("Staff log poll failed: %s", logs.error)

    except Exception as exc:
        logger.error("Ticket poll crashed: %s", exc)
