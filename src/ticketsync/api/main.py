"""FastAPI application factory."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlmodel import SQLModel

from ticketsync.api.routes import staff_logs, sync as sync_routes, tickets
from ticketsync.db.engine import get_engine
from ticketsync.ticketing.factory import build_sync_stack


def create_app(engine=None, client=None, sync_service=None) -> FastAPI:
    """
    Build and return the FastAPI app.

    Args:
        engine: SQLAlchemy engine; defaults to the configured one.
        client: TicketingClient; built from the config row when omitted.
        sync_service: TicketSyncService; built alongside the client when omitted.
    """
    engine = engine or get_engine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables on startup (idempotent)
        SQLModel.metadata.create_all(engine)
        if app.state.client is None or app.state.sync_service is None:
            _, built_client, built_service = build_sync_stack(engine)
            app.state.client = app.state.client or built_client
            app.state.sync_service = app.state.sync_service or built_service
        yield

    app = FastAPI(
        title="Ticket Sync API",
        description="Local ticket cache, stats and sync triggers",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.client = client
    app.state.sync_service = sync_service

    app.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
    app.include_router(staff_logs.router, prefix="/staff-logs", tags=["staff-logs"])
    app.include_router(sync_routes.router, prefix="/sync", tags=["sync"])

    return app
