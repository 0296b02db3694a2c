"""
Derived ticket and staff-log statistics, computed from the local cache.

Definitions:
  avg_resolution_time_hours — mean of (resolved_at - created_at) over
      tickets with a resolved_at. 0.0 when nothing is resolved.
  sla_compliance_percentage — resolved tickets with a due_date whose
      resolved_at <= due_date, divided by resolved tickets with a due_date,
      times 100. Tickets without a due date count in neither term. 100.0
      when no resolved ticket has a due date.
  avg_response_time_minutes — per ticket, minutes from ticket created_at to
      the earliest staff action other than "created"; averaged over tickets
      that have such an action and are present in the cache.

The compute_* functions are pure (lists in, dataclass out). The get_local_*
wrappers read the cache fresh on every call; only the remote stats endpoint
is memoized (see TicketingClient.get_ticket_stats).
"""
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime
from statistics import mean
from typing import Dict, Iterable, List, Optional

from ticketsync.models.staff_log import StaffActionType, StaffLog
from ticketsync.models.ticket import Ticket, TicketPriority, TicketStatus
from ticketsync.ticketing.queries import (
    StaffLogFilters,
    get_local_staff_logs,
    get_local_tickets,
)

UNCATEGORIZED = "uncategorized"
UNASSIGNED_DEPARTMENT = "unassigned"


@dataclass
class TicketStats:
    total_tickets: int = 0
    open_tickets: int = 0
    in_progress_tickets: int = 0
    resolved_tickets: int = 0
    avg_resolution_time_hours: float = 0.0
    sla_compliance_percentage: float = 100.0
    tickets_by_status: Dict[str, int] = field(
        default_factory=lambda: {s.value: 0 for s in TicketStatus}
    )
    tickets_by_priority: Dict[str, int] = field(
        default_factory=lambda: {p.value: 0 for p in TicketPriority}
    )
    tickets_by_category: Dict[str, int] = field(default_factory=dict)
    tickets_by_department: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StaffLogStats:
    total_actions: int = 0
    actions_by_type: Dict[str, int] = field(
        default_factory=lambda: {a.value: 0 for a in StaffActionType}
    )
    actions_by_staff: Dict[str, int] = field(default_factory=dict)
    total_time_spent_minutes: int = 0
    avg_response_time_minutes: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def average_resolution_hours(tickets: Iterable[Ticket]) -> float:
    durations = [
        _hours_between(t.created_at, t.resolved_at)
        for t in tickets
        if t.resolved_at is not None
    ]
    return mean(durations) if durations else 0.0


def sla_compliance_percentage(tickets: Iterable[Ticket]) -> float:
    due_dated = [t for t in tickets if t.resolved_at is not None and t.due_date is not None]
    if not due_dated:
        return 100.0
    on_time = sum(1 for t in due_dated if t.resolved_at <= t.due_date)
    return on_time / len(due_dated) * 100.0


def compute_ticket_stats(tickets: List[Ticket]) -> TicketStats:
    """Aggregate counts, resolution time and SLA compliance for a ticket list."""
    stats = TicketStats(total_tickets=len(tickets))

    for t in tickets:
        stats.tickets_by_status[t.status] = stats.tickets_by_status.get(t.status, 0) + 1
        stats.tickets_by_priority[t.priority] = stats.tickets_by_priority.get(t.priority, 0) + 1

    stats.tickets_by_category = dict(Counter(t.category or UNCATEGORIZED for t in tickets))
    stats.tickets_by_department = dict(
        Counter(t.department or UNASSIGNED_DEPARTMENT for t in tickets)
    )

    stats.open_tickets = stats.tickets_by_status[TicketStatus.OPEN.value]
    stats.in_progress_tickets = stats.tickets_by_status[TicketStatus.IN_PROGRESS.value]
    stats.resolved_tickets = stats.tickets_by_status[TicketStatus.RESOLVED.value]
    stats.avg_resolution_time_hours = average_resolution_hours(tickets)
    stats.sla_compliance_percentage = sla_compliance_percentage(tickets)
    return stats


def average_response_minutes(logs: Iterable[StaffLog], tickets: Iterable[Ticket]) -> float:
    created_by_ticket = {t.external_ticket_id: t.created_at for t in tickets}

    first_action: Dict[str, datetime] = {}
    for log in logs:
        if log.action_type == StaffActionType.CREATED.value:
            continue
        if log.external_ticket_id not in created_by_ticket:
            continue
        seen = first_action.get(log.external_ticket_id)
        if seen is None or log.created_at < seen:
            first_action[log.external_ticket_id] = log.created_at

    waits = [
        (acted_at - created_by_ticket[ext_id]).total_seconds() / 60.0
        for ext_id, acted_at in first_action.items()
    ]
    return mean(waits) if waits else 0.0


def compute_staff_log_stats(
    logs: List[StaffLog], tickets: Optional[List[Ticket]] = None
) -> StaffLogStats:
    """
    Aggregate staff actions.

    actions_by_staff is keyed by staff_id; display names are not unique.
    tickets is only needed for avg_response_time_minutes.
    """
    stats = StaffLogStats(total_actions=len(logs))
    for log in logs:
        stats.actions_by_type[log.action_type] = stats.actions_by_type.get(log.action_type, 0) + 1
    stats.actions_by_staff = dict(Counter(log.staff_id for log in logs))
    stats.total_time_spent_minutes = sum(log.time_spent_minutes or 0 for log in logs)
    if tickets:
        stats.avg_response_time_minutes = average_response_minutes(logs, tickets)
    return stats


def get_local_ticket_stats(engine) -> TicketStats:
    """Fresh stats over the whole ticket cache."""
    return compute_ticket_stats(get_local_tickets(engine))


def get_local_staff_log_stats(engine, ticket_id: Optional[int] = None) -> StaffLogStats:
    """
    Fresh staff-log stats, optionally for one ticket.

    Args:
        engine: SQLAlchemy engine.
        ticket_id: Local tickets_cache id. None aggregates all logs.
    """
    logs = get_local_staff_logs(engine, StaffLogFilters(ticket_id=ticket_id))
    tickets = get_local_tickets(engine)
    if ticket_id is not None:
        tickets = [t for t in tickets if t.id == ticket_id]
    return compute_staff_log_stats(logs, tickets)
