"""Ticket routes: local cache reads plus remote-proxied calls."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ticketsync.analysis.stats import get_local_ticket_stats
from ticketsync.api.dependencies import get_app_engine, get_client
from ticketsync.models.ticket import Ticket
from ticketsync.ticketing.client import FetchResult
from ticketsync.ticketing.queries import (
    SORT_FIELDS,
    TicketFilters,
    TicketSort,
    get_local_ticket,
    get_local_tickets,
)

router = APIRouter()


def _unwrap(result: FetchResult) -> Any:
    """Map a remote failure onto 502 so the UI can show the error banner."""
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    return result.data


@router.get("/", response_model=List[Ticket])
def list_tickets(
    status: List[str] = Query(default=[]),
    priority: List[str] = Query(default=[]),
    category: List[str] = Query(default=[]),
    department: List[str] = Query(default=[]),
    assignee_id: Optional[str] = None,
    requester_id: Optional[str] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_direction: str = "desc",
    limit: Optional[int] = None,
    engine=Depends(get_app_engine),
):
    """List cached tickets, newest first unless sort_by says otherwise."""
    if sort_by not in SORT_FIELDS or sort_direction not in ("asc", "desc"):
        raise HTTPException(status_code=422, detail="Unsupported sort")
    filters = TicketFilters(
        status=status,
        priority=priority,
        category=category,
        department=department,
        assignee_id=assignee_id,
        requester_id=requester_id,
        created_after=created_after,
        created_before=created_before,
        search=search,
    )
    return get_local_tickets(
        engine, filters, TicketSort(field=sort_by, direction=sort_direction), limit=limit
    )


@router.get("/stats")
def ticket_stats(engine=Depends(get_app_engine)):
    """Stats recomputed from the local cache."""
    return get_local_ticket_stats(engine).to_dict()


@router.get("/remote/stats")
async def remote_ticket_stats(client=Depends(get_client)):
    """Remote-computed stats (memoized for five minutes by the client)."""
    return _unwrap(await client.get_ticket_stats())


@router.get("/remote/{ticket_id}")
async def remote_ticket(ticket_id: str, client=Depends(get_client)):
    return _unwrap(await client.get_ticket_by_id(ticket_id))


@router.post("/remote")
async def create_remote_ticket(payload: Dict[str, Any], client=Depends(get_client)):
    """Create the ticket upstream. The cache picks it up on the next sync."""
    return _unwrap(await client.create_ticket(payload))


@router.patch("/remote/{ticket_id}")
async def update_remote_ticket(
    ticket_id: str, payload: Dict[str, Any], client=Depends(get_client)
):
    return _unwrap(await client.update_ticket(ticket_id, payload))


@router.get("/{ticket_id}", response_model=Ticket)
def get_ticket(ticket_id: int, engine=Depends(get_app_engine)):
    """Fetch a single cached ticket by local primary key."""
    ticket = get_local_ticket(engine, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket
