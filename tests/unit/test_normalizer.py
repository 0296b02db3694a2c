"""Tests for the remote payload normalizer, driven by captured fixtures."""
import json
from datetime import datetime
from pathlib import Path

import pytest

from ticketsync.ticketing.normalizer import (
    extract_items,
    normalize_staff_log,
    normalize_ticket,
    parse_datetime,
)

FIXTURES = Path(__file__).parent.parent / "fixtures"

TICKETS_PAYLOAD = json.loads((FIXTURES / "remote_tickets.json").read_text())
STAFF_LOGS_PAYLOAD = json.loads((FIXTURES / "remote_staff_logs.json").read_text())
TICKETS = TICKETS_PAYLOAD["data"]


class TestExtractItems:
    def test_wrapped_in_data(self):
        assert len(extract_items(TICKETS_PAYLOAD)) == 3

    def test_bare_list(self):
        assert len(extract_items(STAFF_LOGS_PAYLOAD)) == 4

    def test_none_is_empty(self):
        assert extract_items(None) == []

    def test_nested_data_object(self):
        assert extract_items({"data": {"tickets": [{"id": 1}]}}) == [{"id": 1}]

    def test_unrecognised_payload_raises(self):
        with pytest.raises(ValueError):
            extract_items("not a list")


class TestParseDatetime:
    def test_trailing_z_is_utc(self):
        assert parse_datetime("2025-03-03T09:15:00Z") == datetime(2025, 3, 3, 9, 15)

    def test_offset_converted_to_utc(self):
        assert parse_datetime("2025-03-04T15:30:00+02:00") == datetime(2025, 3, 4, 13, 30)

    def test_naive_kept(self):
        assert parse_datetime("2025-03-04T15:30:00") == datetime(2025, 3, 4, 15, 30)

    def test_empty_is_none(self):
        assert parse_datetime(None) is None
        assert parse_datetime("") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_datetime("yesterday")


class TestNormalizeTicket:
    def test_flat_fields(self):
        fields = normalize_ticket(TICKETS[1])
        assert fields["external_ticket_id"] == "tkt_9002"
        assert fields["ticket_number"] == "TCK-1043"
        assert fields["status"] == "resolved"
        assert fields["requester_name"] == "Lee Park"
        assert fields["resolved_at"] == datetime(2025, 3, 1, 12, 0)

    def test_nested_requester(self):
        fields = normalize_ticket(TICKETS[0])
        assert fields["requester_id"] == "usr_12"
        assert fields["requester_email"] == "dana@example.com"
        assert fields["tags"] == ["vpn", "remote"]
        assert fields["custom_fields"] == {"site": "Boise"}

    def test_alternate_keys(self):
        """subject / number are accepted in place of title / ticket_number."""
        fields = normalize_ticket(TICKETS[2])
        assert fields["title"] == "Password reset for payroll portal"
        assert fields["ticket_number"] == "TCK-1044"
        assert fields["tags"] == []
        assert fields["due_date"] is None

    def test_missing_updated_at_falls_back_to_created(self):
        raw = {"id": "t", "title": "x", "created_at": "2025-01-01T00:00:00Z"}
        fields = normalize_ticket(raw)
        assert fields["updated_at"] == fields["created_at"]

    def test_status_is_lowercased(self):
        raw = {"id": "t", "title": "x", "status": "ON_HOLD", "created_at": "2025-01-01T00:00:00Z"}
        assert normalize_ticket(raw)["status"] == "on_hold"

    @pytest.mark.parametrize("raw", [
        {"title": "no id", "created_at": "2025-01-01T00:00:00Z"},
        {"id": "t", "created_at": "2025-01-01T00:00:00Z"},
        {"id": "t", "title": "x", "status": "archived", "created_at": "2025-01-01T00:00:00Z"},
        {"id": "t", "title": "x", "priority": "p0", "created_at": "2025-01-01T00:00:00Z"},
        {"id": "t", "title": "x"},
        {"id": "t", "title": "x", "status": 3, "created_at": "2025-01-01T00:00:00Z"},
        {"id": "t", "title": "x", "priority": ["high"], "created_at": "2025-01-01T00:00:00Z"},
        "tkt_1",
        None,
    ])
    def test_invalid_records_raise(self, raw):
        with pytest.raises(ValueError):
            normalize_ticket(raw)


class TestNormalizeStaffLog:
    def test_flat_fields(self):
        fields = normalize_staff_log(STAFF_LOGS_PAYLOAD[0])
        assert fields["external_log_id"] == "log_501"
        assert fields["external_ticket_id"] == "tkt_9001"
        assert fields["action_type"] == "assigned"
        assert fields["time_spent_minutes"] == 5
        assert "ticket_id" not in fields

    def test_nested_staff(self):
        fields = normalize_staff_log(STAFF_LOGS_PAYLOAD[1])
        assert fields["staff_id"] == "stf_3"
        assert fields["staff_name"] == "Sam Lee"
        assert fields["action_details"] == {"visibility": "internal"}

    def test_unknown_action_type_raises(self):
        raw = dict(STAFF_LOGS_PAYLOAD[0], action_type="teleported")
        with pytest.raises(ValueError):
            normalize_staff_log(raw)

    @pytest.mark.parametrize("raw", [
        dict(STAFF_LOGS_PAYLOAD[0], action_type=7),
        ["log_501"],
        None,
    ])
    def test_wrong_type_raises_value_error(self, raw):
        with pytest.raises(ValueError):
            normalize_staff_log(raw)

    def test_missing_ticket_id_raises(self):
        raw = {k: v for k, v in STAFF_LOGS_PAYLOAD[0].items() if k != "ticket_id"}
        with pytest.raises(ValueError):
            normalize_staff_log(raw)
