"""
Read-only access to the local ticket and staff-log caches.

Every accessor swallows SQLAlchemyError: the failure is logged and an empty
result comes back, so a broken cache degrades dashboards to "no data"
instead of an error page.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from ticketsync.models.staff_log import StaffLog
from ticketsync.models.ticket import PRIORITY_RANK, Ticket

logger = logging.getLogger(__name__)

SORT_FIELDS = ("created_at", "updated_at", "priority", "status", "due_date")


@dataclass
class TicketFilters:
    status: List[str] = field(default_factory=list)
    priority: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    department: List[str] = field(default_factory=list)
    assignee_id: Optional[str] = None
    requester_id: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    search: Optional[str] = None


@dataclass
class TicketSort:
    field: str = "created_at"
    direction: str = "desc"  # "asc" | "desc"

    def __post_init__(self):
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field {self.field!r}")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort direction {self.direction!r}")


@dataclass
class StaffLogFilters:
    ticket_id: Optional[int] = None  # local tickets_cache id
    external_ticket_id: Optional[str] = None
    staff_id: Optional[str] = None
    action_type: List[str] = field(default_factory=list)
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None


def _escape_like(term: str) -> str:
    """Make % and _ in user search text match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _sort_column(sort: TicketSort):
    if sort.field == "priority":
        # Rank by severity, not alphabetically
        column = case(PRIORITY_RANK, value=Ticket.priority, else_=0)
    else:
        column = getattr(Ticket, sort.field)
    return column.asc() if sort.direction == "asc" else column.desc()


def build_ticket_query(filters: Optional[TicketFilters] = None, sort: Optional[TicketSort] = None):
    """Compose the SELECT for get_local_tickets(). Exposed for testing."""
    filters = filters or TicketFilters()
    sort = sort or TicketSort()

    stmt = select(Ticket)
    if filters.status:
        stmt = stmt.where(col(Ticket.status).in_(filters.status))
    if filters.priority:
        stmt = stmt.where(col(Ticket.priority).in_(filters.priority))
    if filters.category:
        stmt = stmt.where(col(Ticket.category).in_(filters.category))
    if filters.department:
        stmt = stmt.where(col(Ticket.department).in_(filters.department))
    if filters.assignee_id:
        stmt = stmt.where(Ticket.assignee_id == filters.assignee_id)
    if filters.requester_id:
        stmt = stmt.where(Ticket.requester_id == filters.requester_id)
    if filters.created_after:
        stmt = stmt.where(Ticket.created_at >= filters.created_after)
    if filters.created_before:
        stmt = stmt.where(Ticket.created_at <= filters.created_before)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        stmt = stmt.where(
            or_(
                col(Ticket.title).ilike(pattern, escape="\\"),
                col(Ticket.description).ilike(pattern, escape="\\"),
                col(Ticket.ticket_number).ilike(pattern, escape="\\"),
            )
        )
    # id as tie-breaker keeps paging stable
    return stmt.order_by(_sort_column(sort), col(Ticket.id).desc())


def get_local_tickets(
    engine,
    filters: Optional[TicketFilters] = None,
    sort: Optional[TicketSort] = None,
    limit: Optional[int] = None,
) -> List[Ticket]:
    """Filtered, sorted tickets from the cache (newest first by default)."""
    stmt = build_ticket_query(filters, sort)
    if limit:
        stmt = stmt.limit(limit)
    try:
        with Session(engine) as s:
            return list(s.exec(stmt).all())
    except SQLAlchemyError as exc:
        logger.error("Local ticket query failed: %s", exc)
        return []


def get_local_ticket(engine, ticket_id: int) -> Optional[Ticket]:
    try:
        with Session(engine) as s:
            return s.get(Ticket, ticket_id)
    except SQLAlchemyError as exc:
        logger.error("Local ticket lookup %s failed: %s", ticket_id, exc)
        return None


def get_local_staff_logs(engine, filters: Optional[StaffLogFilters] = None) -> List[StaffLog]:
    """Staff logs from the cache, newest first."""
    filters = filters or StaffLogFilters()

    stmt = select(StaffLog)
    if filters.ticket_id is not None:
        stmt = stmt.where(StaffLog.ticket_id == filters.ticket_id)
    if filters.external_ticket_id:
        stmt = stmt.where(StaffLog.external_ticket_id == filters.external_ticket_id)
    if filters.staff_id:
        stmt = stmt.where(StaffLog.staff_id == filters.staff_id)
    if filters.action_type:
        stmt = stmt.where(col(StaffLog.action_type).in_(filters.action_type))
    if filters.created_after:
        stmt = stmt.where(StaffLog.created_at >= filters.created_after)
    if filters.created_before:
        stmt = stmt.where(StaffLog.created_at <= filters.created_before)
    stmt = stmt.order_by(col(StaffLog.created_at).desc(), col(StaffLog.id).desc())

    try:
        with Session(engine) as s:
            return list(s.exec(stmt).all())
    except SQLAlchemyError as exc:
        logger.error("Local staff log query failed: %s", exc)
        return []
