"""Builds the client / sync service graph once per process."""
from typing import Optional, Tuple

from ticketsync.config import Settings, get_settings
from ticketsync.ticketing.client import TicketingClient
from ticketsync.ticketing.config_resolver import ConfigResolver
from ticketsync.ticketing.sync_service import TicketSyncService


def build_sync_stack(
    engine, settings: Optional[Settings] = None
) -> Tuple[ConfigResolver, TicketingClient, TicketSyncService]:
    """
    Wire resolver → client → sync service against one engine.

    Seeds the config row from settings on first start; after that the row
    (editable at runtime) is the source of truth for URL and credential.
    """
    settings = settings or get_settings()
    resolver = ConfigResolver(engine)
    config = resolver.ensure_config(
        api_base_url=settings.ticketing_api_base_url,
        api_key=settings.ticketing_api_key,
    )
    client = TicketingClient(
        resolver,
        base_url=config.api_base_url or settings.ticketing_api_base_url,
        timeout=settings.request_timeout_seconds,
        max_attempts=settings.fetch_max_attempts,
        backoff_base=settings.backoff_base_seconds,
        stats_ttl_seconds=settings.remote_stats_ttl_seconds,
    )
    service = TicketSyncService(
        client=client,
        engine=engine,
        resolver=resolver,
        page_limit=settings.sync_page_limit,
    )
    return resolver, client, service
