"""Sync audit log model."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class SyncStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


class SyncType(str, Enum):
    TICKETS = "tickets"
    STAFF_LOGS = "staff_logs"


class TicketSyncLog(SQLModel, table=True):
    """Records each reconciliation pass. Finalized once, never touched again."""

    __tablename__ = "ticket_sync_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    sync_type: str = Field(index=True)
    status: str = SyncStatus.IN_PROGRESS.value
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    records_processed: int = 0
    records_failed: int = 0
    error_message: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
