"""Shared test fixtures."""
from datetime import datetime
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from ticketsync.models.staff_log import StaffLog  # noqa: F401
from ticketsync.models.sync import TicketSyncLog  # noqa: F401
from ticketsync.models.ticket import Ticket
from ticketsync.models.ticketing_config import TicketingSystemConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="active_config")
def active_config_fixture(test_session: Session) -> TicketingSystemConfig:
    config = TicketingSystemConfig(
        api_base_url="https://tickets.example.com/api",
        api_key_encrypted="secret-key",
    )
    test_session.add(config)
    test_session.commit()
    test_session.refresh(config)
    return config


def make_ticket(external_id: str, **overrides) -> Ticket:
    """A Ticket with sensible defaults; override any column by keyword."""
    fields = dict(
        external_ticket_id=external_id,
        ticket_number=f"TCK-{external_id}",
        title=f"Ticket {external_id}",
        status="open",
        priority="medium",
        created_at=datetime(2025, 3, 1, 9, 0),
        updated_at=datetime(2025, 3, 1, 9, 0),
    )
    fields.update(overrides)
    return Ticket(**fields)


@pytest.fixture(name="seeded_ticket")
def seeded_ticket_fixture(test_session: Session) -> Ticket:
    """A persisted Ticket for use in staff-log tests."""
    ticket = make_ticket(
        "tkt_9001",
        title="VPN drops every 20 minutes",
        status="in_progress",
        priority="high",
        created_at=datetime(2025, 3, 3, 9, 15),
    )
    test_session.add(ticket)
    test_session.commit()
    test_session.refresh(ticket)
    return ticket
