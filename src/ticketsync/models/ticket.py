"""Cached ticket model: one row per remote ticket."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    ON_HOLD = "on_hold"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
    CRITICAL = "critical"


# Severity rank used when sorting by priority (higher = more severe)
PRIORITY_RANK = {
    TicketPriority.LOW.value: 1,
    TicketPriority.MEDIUM.value: 2,
    TicketPriority.HIGH.value: 3,
    TicketPriority.URGENT.value: 4,
    TicketPriority.CRITICAL.value: 5,
}


class Ticket(SQLModel, table=True):
    """
    Local mirror of a remote ticket.

    Rows are written only by TicketSyncService; external_ticket_id is the
    upsert conflict target.
    """

    __tablename__ = "tickets_cache"

    id: Optional[int] = Field(default=None, primary_key=True)
    external_ticket_id: str = Field(unique=True, index=True)
    ticket_number: str = Field(default="", index=True)
    title: str
    description: Optional[str] = None
    status: str = Field(default=TicketStatus.OPEN.value, index=True)
    priority: str = Field(default=TicketPriority.MEDIUM.value, index=True)
    category: Optional[str] = None
    department: Optional[str] = None

    requester_id: Optional[str] = None
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    assignee_id: Optional[str] = Field(default=None, index=True)
    assignee_name: Optional[str] = None

    # Remote timestamps, stored as naive UTC
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    due_date: Optional[datetime] = None

    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    custom_fields: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    last_synced_at: datetime = Field(default_factory=datetime.utcnow)
