"""Persisted connection settings for the remote ticketing system."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class TicketingSystemConfig(SQLModel, table=True):
    """Single active row holding the API credential and sync bookkeeping."""

    __tablename__ = "ticketing_system_config"

    id: Optional[int] = Field(default=None, primary_key=True)
    api_base_url: str
    api_key_encrypted: Optional[str] = None
    sync_enabled: bool = True
    sync_interval_minutes: int = 15
    last_successful_sync: Optional[datetime] = None
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
