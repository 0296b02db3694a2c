"""
TicketSyncService — reconciles remote tickets and staff logs into the cache.

Flow for one sync pass (tickets and staff logs alike):
  1. Create TicketSyncLog (status="in_progress")
  2. Fetch the remote list through TicketingClient (retries live there)
  3. Fetch failed → finalize log as "failed", return a failed SyncResult
  4. Fetch succeeded → normalize + upsert each record in its own session;
     a bad record is logged, rolled back and counted, the loop carries on
  5. Finalize log as "success" with processed / failed counts
  6. Stamp last_successful_sync on the active config row

Idempotency: upserts key on the remote identifier (external_ticket_id /
external_log_id, both unique). Re-syncing an unchanged snapshot rewrites the
same rows in place.

Staff logs carry the remote ticket id; each log is linked to the local
tickets_cache row when that ticket is already cached, otherwise ticket_id
stays None until a later log sync finds it.

No lock is held across a pass. Two overlapping passes interleave per row and
the last writer wins, which is fine because both write the remote's data.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ticketsync.models.staff_log import StaffLog
from ticketsync.models.sync import SyncStatus, SyncType, TicketSyncLog
from ticketsync.models.ticket import Ticket
from ticketsync.ticketing.normalizer import (
    extract_items,
    normalize_staff_log,
    normalize_ticket,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 1000


class PersistenceError(RuntimeError):
    """A single record could not be normalized or written."""


@dataclass
class SyncResult:
    """What a sync pass reports back to its caller."""

    success: bool
    sync_log_id: Optional[int] = None
    records_processed: int = 0
    records_failed: int = 0
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class TicketSyncService:
    """Orchestrates remote → cache reconciliation for tickets and staff logs."""

    def __init__(self, client, engine, resolver=None, page_limit: int = DEFAULT_PAGE_LIMIT):
        """
        Args:
            client: TicketingClient instance (or AsyncMock in tests).
            engine: SQLAlchemy engine (SQLModel create_engine result).
            resolver: ConfigResolver used to stamp last_successful_sync.
                If None, the stamp is skipped.
            page_limit: Max records requested per pass.
        """
        self.client = client
        self.engine = engine
        self.resolver = resolver
        self.page_limit = page_limit

    async def sync_tickets(self) -> SyncResult:
        """Pull the most recently updated tickets and upsert them into the cache."""
        return await self._run_sync(
            sync_type=SyncType.TICKETS.value,
            fetch=lambda: self.client.get_tickets(
                page=1,
                limit=self.page_limit,
                sort_by="updated_at",
                sort_direction="desc",
            ),
            upsert=self._upsert_ticket,
            details={},
        )

    async def sync_staff_logs(self, ticket_id: Optional[str] = None) -> SyncResult:
        """
        Pull staff action logs and upsert them into the cache.

        Args:
            ticket_id: Remote ticket id to scope the pass to one ticket.
                None syncs all logs.
        """
        return await self._run_sync(
            sync_type=SyncType.STAFF_LOGS.value,
            fetch=lambda: self.client.get_staff_logs(
                page=1, limit=self.page_limit, ticket_id=ticket_id
            ),
            upsert=self._upsert_staff_log,
            details={"ticket_id": ticket_id} if ticket_id else {},
        )

    # ─── Shared pass skeleton ─────────────────────────────────────────────────

    async def _run_sync(
        self,
        *,
        sync_type: str,
        fetch: Callable,
        upsert: Callable[[Dict[str, Any]], None],
        details: Dict[str, Any],
    ) -> SyncResult:
        log = self._create_sync_log(sync_type, details)
        logger.info("Starting %s sync (run %s)", sync_type, log.id)

        try:
            result = await fetch()
            if not result.ok:
                self._finish_sync_log(
                    log, status=SyncStatus.FAILED.value, error_message=result.error
                )
                logger.error("%s sync failed: %s", sync_type, result.error)
                return SyncResult(
                    success=False, sync_log_id=log.id, error=result.error, details=details
                )

            records = extract_items(result.data)
            processed = failed = 0
            for raw in records:
                try:
                    upsert(raw)
                    processed += 1
                except PersistenceError as exc:
                    failed += 1
                    logger.warning("Skipping %s record: %s", sync_type, exc)

            details = {**details, "fetched": len(records)}
            self._finish_sync_log(
                log,
                status=SyncStatus.SUCCESS.value,
                records_processed=processed,
                records_failed=failed,
                details=details,
            )
        except Exception as exc:
            self._finish_sync_log(
                log, status=SyncStatus.FAILED.value, error_message=str(exc)
            )
            logger.exception("%s sync aborted", sync_type)
            return SyncResult(
                success=False, sync_log_id=log.id, error=str(exc), details=details
            )

        if self.resolver is not None:
            try:
                self.resolver.mark_successful_sync()
            except SQLAlchemyError:
                logger.exception("Could not record last_successful_sync")

        logger.info(
            "%s sync complete: %d processed, %d failed", sync_type, processed, failed
        )
        return SyncResult(
            success=True,
            sync_log_id=log.id,
            records_processed=processed,
            records_failed=failed,
            details=details,
        )

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _create_sync_log(self, sync_type: str, details: Dict[str, Any]) -> TicketSyncLog:
        log = TicketSyncLog(
            sync_type=sync_type,
            status=SyncStatus.IN_PROGRESS.value,
            started_at=datetime.utcnow(),
            details=details,
        )
        with Session(self.engine) as s:
            s.add(log)
            s.commit()
            s.refresh(log)
        return log

    def _finish_sync_log(
        self,
        log: TicketSyncLog,
        *,
        status: str,
        records_processed: int = 0,
        records_failed: int = 0,
        error_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        with Session(self.engine) as s:
            db_log = s.get(TicketSyncLog, log.id)
            if db_log.status != SyncStatus.IN_PROGRESS.value:
                # Terminal rows are immutable
                return
            db_log.status = status
            db_log.completed_at = datetime.utcnow()
            db_log.records_processed = records_processed
            db_log.records_failed = records_failed
            db_log.error_message = error_message
            if details is not None:
                db_log.details = details
            s.add(db_log)
            s.commit()

    def _upsert_ticket(self, raw: Dict[str, Any]) -> None:
        """Normalize and upsert one ticket keyed by external_ticket_id."""
        try:
            fields = normalize_ticket(raw)
        except (ValueError, TypeError, AttributeError) as exc:
            raise PersistenceError(str(exc)) from exc

        with Session(self.engine) as s:
            try:
                existing = s.exec(
                    select(Ticket).where(
                        Ticket.external_ticket_id == fields["external_ticket_id"]
                    )
                ).first()
                row = existing or Ticket(**fields)
                if existing:
                    for k, v in fields.items():
                        setattr(existing, k, v)
                row.last_synced_at = datetime.utcnow()
                s.add(row)
                s.commit()
            except SQLAlchemyError as exc:
                s.rollback()
                raise PersistenceError(
                    f"ticket {fields['external_ticket_id']}: {exc}"
                ) from exc

    def _upsert_staff_log(self, raw: Dict[str, Any]) -> None:
        """Normalize, resolve the local ticket FK, and upsert one staff log."""
        try:
            fields = normalize_staff_log(raw)
        except (ValueError, TypeError, AttributeError) as exc:
            raise PersistenceError(str(exc)) from exc

        with Session(self.engine) as s:
            try:
                fields["ticket_id"] = s.exec(
                    select(Ticket.id).where(
                        Ticket.external_ticket_id == fields["external_ticket_id"]
                    )
                ).first()

                existing = s.exec(
                    select(StaffLog).where(
                        StaffLog.external_log_id == fields["external_log_id"]
                    )
                ).first()
                row = existing or StaffLog(**fields)
                if existing:
                    for k, v in fields.items():
                        setattr(existing, k, v)
                row.last_synced_at = datetime.utcnow()
                s.add(row)
                s.commit()
            except SQLAlchemyError as exc:
                s.rollback()
                raise PersistenceError(
                    f"staff log {fields['external_log_id']}: {exc}"
                ) from exc
