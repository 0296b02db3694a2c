"""Cached staff action log model."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class StaffActionType(str, Enum):
    CREATED = "created"
    ASSIGNED = "assigned"
    STATUS_CHANGED = "status_changed"
    PRIORITY_CHANGED = "priority_changed"
    COMMENTED = "commented"
    UPDATED = "updated"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"
    TAGGED = "tagged"
    LINKED = "linked"
    TIME_LOGGED = "time_logged"
    FILE_ATTACHED = "file_attached"
    ESCALATED = "escalated"
    TRANSFERRED = "transferred"


class StaffLog(SQLModel, table=True):
    """
    One row per remote staff action.

    ticket_id points at the local tickets_cache row and is only filled in when
    that ticket was already cached when the log was synced. external_ticket_id
    is always kept so a later log re-sync can link it.
    """

    __tablename__ = "staff_logs_cache"

    id: Optional[int] = Field(default=None, primary_key=True)
    external_log_id: str = Field(unique=True, index=True)
    ticket_id: Optional[int] = Field(default=None, foreign_key="tickets_cache.id", index=True)
    external_ticket_id: str = Field(index=True)

    staff_id: str = Field(index=True)
    staff_name: str = ""
    staff_email: Optional[str] = None

    action_type: str = Field(index=True)
    action_details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    comment: Optional[str] = None
    time_spent_minutes: int = 0

    created_at: datetime
    last_synced_at: datetime = Field(default_factory=datetime.utcnow)
