"""Tests for cache models."""
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ticketsync.models.staff_log import StaffLog
from ticketsync.models.sync import TicketSyncLog
from ticketsync.models.ticket import Ticket
from ticketsync.models.ticketing_config import TicketingSystemConfig


def _ticket(ext_id="tkt_1", **overrides) -> Ticket:
    fields = dict(
        external_ticket_id=ext_id,
        title="Broken laptop",
        created_at=datetime(2025, 3, 1, 9, 0),
        updated_at=datetime(2025, 3, 1, 9, 0),
    )
    fields.update(overrides)
    return Ticket(**fields)


class TestTicket:
    def test_defaults(self):
        ticket = _ticket()
        assert ticket.status == "open"
        assert ticket.priority == "medium"
        assert ticket.tags == []
        assert ticket.custom_fields == {}
        assert ticket.resolved_at is None

    def test_json_columns_round_trip(self, test_session: Session):
        test_session.add(_ticket(tags=["vpn"], custom_fields={"site": "Boise", "floor": 2}))
        test_session.commit()
        row = test_session.exec(select(Ticket)).one()
        assert row.tags == ["vpn"]
        assert row.custom_fields == {"site": "Boise", "floor": 2}

    def test_external_id_unique(self, test_session: Session):
        test_session.add(_ticket("dup"))
        test_session.commit()
        test_session.add(_ticket("dup", title="Second copy"))
        with pytest.raises(IntegrityError):
            test_session.commit()


class TestStaffLog:
    def test_ticket_reference_nullable(self, test_session: Session):
        test_session.add(StaffLog(
            external_log_id="log_1",
            external_ticket_id="tkt_missing",
            staff_id="stf_1",
            action_type="commented",
            created_at=datetime(2025, 3, 1, 10, 0),
        ))
        test_session.commit()
        row = test_session.exec(select(StaffLog)).one()
        assert row.ticket_id is None
        assert row.time_spent_minutes == 0
        assert row.action_details == {}


class TestTicketSyncLog:
    def test_starts_in_progress(self):
        log = TicketSyncLog(sync_type="tickets")
        assert log.status == "in_progress"
        assert log.records_processed == 0
        assert log.completed_at is None


class TestTicketingSystemConfig:
    def test_defaults(self):
        config = TicketingSystemConfig(api_base_url="https://tickets.example.com/api")
        assert config.sync_enabled is True
        assert config.sync_interval_minutes == 15
        assert config.is_active is True
        assert config.last_successful_sync is None

    def test_columns_limited_to_pull_sync(self):
        columns = set(TicketingSystemConfig.__table__.columns.keys())
        assert columns == {
            "id",
            "api_base_url",
            "api_key_encrypted",
            "sync_enabled",
            "sync_interval_minutes",
            "last_successful_sync",
            "is_active",
            "created_at",
            "updated_at",
        }
