"""
Loads the active ticketing-system configuration row.

The credential lives in the ticketing_system_config table rather than in the
environment so that it can be rotated from the admin UI without a restart.
A missing row or empty key is not an error here: callers send an empty bearer
token and the remote server rejects it.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from ticketsync.models.ticketing_config import TicketingSystemConfig

logger = logging.getLogger(__name__)


def _active_config_stmt():
    return (
        select(TicketingSystemConfig)
        .where(TicketingSystemConfig.is_active == True)  # noqa: E712
        .order_by(TicketingSystemConfig.id.desc())
    )


class ConfigResolver:
    """Reads and updates the single active TicketingSystemConfig row."""

    def __init__(self, engine):
        self.engine = engine

    def get_active_config(self) -> Optional[TicketingSystemConfig]:
        with Session(self.engine) as s:
            return s.exec(_active_config_stmt()).first()

    def get_api_key(self) -> Optional[str]:
        """Return the active API credential, or None when none is configured."""
        config = self.get_active_config()
        if config is None or not config.api_key_encrypted:
            logger.warning("No active ticketing API credential configured")
            return None
        return config.api_key_encrypted

    def mark_successful_sync(self, when: Optional[datetime] = None) -> None:
        """Stamp last_successful_sync on the active config row."""
        when = when or datetime.utcnow()
        with Session(self.engine) as s:
            config = s.exec(_active_config_stmt()).first()
            if config is None:
                logger.warning("No active ticketing config; last_successful_sync not recorded")
                return
            config.last_successful_sync = when
            config.updated_at = datetime.utcnow()
            s.add(config)
            s.commit()

    def ensure_config(self, api_base_url: str, api_key: str = "") -> TicketingSystemConfig:
        """Create an active config row from settings if none exists yet."""
        with Session(self.engine) as s:
            existing = s.exec(_active_config_stmt()).first()
            if existing:
                return existing
            config = TicketingSystemConfig(
                api_base_url=api_base_url,
                api_key_encrypted=api_key or None,
            )
            s.add(config)
            s.commit()
            s.refresh(config)
            logger.info("Created ticketing config row for %s", api_base_url)
            return config
