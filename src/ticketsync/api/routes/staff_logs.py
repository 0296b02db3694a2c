"""Staff action log routes (local cache only)."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ticketsync.analysis.stats import get_local_staff_log_stats
from ticketsync.api.dependencies import get_app_engine
from ticketsync.models.staff_log import StaffLog
from ticketsync.ticketing.queries import StaffLogFilters, get_local_staff_logs

router = APIRouter()


@router.get("/", response_model=List[StaffLog])
def list_staff_logs(
    ticket_id: Optional[int] = None,
    external_ticket_id: Optional[str] = None,
    staff_id: Optional[str] = None,
    action_type: List[str] = Query(default=[]),
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
    engine=Depends(get_app_engine),
):
    """List cached staff actions, newest first."""
    filters = StaffLogFilters(
        ticket_id=ticket_id,
        external_ticket_id=external_ticket_id,
        staff_id=staff_id,
        action_type=action_type,
        created_after=created_after,
        created_before=created_before,
    )
    return get_local_staff_logs(engine, filters)


@router.get("/stats")
def staff_log_stats(ticket_id: Optional[int] = None, engine=Depends(get_app_engine)):
    return get_local_staff_log_stats(engine, ticket_id=ticket_id).to_dict()
