"""Sync trigger and status routes."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from ticketsync.api.dependencies import get_app_engine, get_sync_service
from ticketsync.models.sync import TicketSyncLog

router = APIRouter()


class StaffLogSyncRequest(BaseModel):
    ticket_id: Optional[str] = None  # remote ticket id; None syncs every log


class SyncResponse(BaseModel):
    success: bool
    sync_log_id: Optional[int]
    records_processed: int
    records_failed: int
    error: Optional[str]


class SyncStatusResponse(BaseModel):
    sync_type: Optional[str]
    status: str
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    records_processed: Optional[int]
    records_failed: Optional[int]
    error_message: Optional[str]


def _to_response(result) -> SyncResponse:
    return SyncResponse(
        success=result.success,
        sync_log_id=result.sync_log_id,
        records_processed=result.records_processed,
        records_failed=result.records_failed,
        error=result.error,
    )


@router.post("/tickets", response_model=SyncResponse)
async def trigger_ticket_sync(service=Depends(get_sync_service)):
    """Run a ticket sync and report the outcome (error string on failure)."""
    return _to_response(await service.sync_tickets())


@router.post("/staff-logs", response_model=SyncResponse)
async def trigger_staff_log_sync(
    body: Optional[StaffLogSyncRequest] = None,
    service=Depends(get_sync_service),
):
    ticket_id = body.ticket_id if body else None
    return _to_response(await service.sync_staff_logs(ticket_id=ticket_id))


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(sync_type: Optional[str] = None, engine=Depends(get_app_engine)):
    """Return the most recent sync run, optionally of one type."""
    stmt = select(TicketSyncLog)
    if sync_type:
        stmt = stmt.where(TicketSyncLog.sync_type == sync_type)
    with Session(engine) as session:
        log = session.exec(
            stmt.order_by(TicketSyncLog.started_at.desc(), TicketSyncLog.id.desc())
        ).first()
    if not log:
        return SyncStatusResponse(
            sync_type=sync_type,
            status="never_run",
            started_at=None,
            completed_at=None,
            records_processed=None,
            records_failed=None,
            error_message=None,
        )
    return SyncStatusResponse(
        sync_type=log.sync_type,
        status=log.status,
        started_at=log.started_at,
        completed_at=log.completed_at,
        records_processed=log.records_processed,
        records_failed=log.records_failed,
        error_message=log.error_message,
    )
