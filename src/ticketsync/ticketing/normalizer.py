"""
Remote ticketing API payload normalizer.

Converts raw dicts from the remote API into clean field dicts that map
directly onto the Ticket / StaffLog columns. No DB access here — callers
(sync_service) handle persistence.

All functions return plain dicts so they're easy to test without any
SQLModel or DB dependencies. Invalid records raise ValueError; the sync
loop counts those as failed rows.

The remote API is not fully consistent about key names:
  - the ticket id arrives as "id" or "ticket_id"
  - the human ticket number as "ticket_number" or "number"
  - nested people objects ("requester": {...}, "assignee": {...}) are
    sometimes used instead of flat *_id / *_name keys
  - list endpoints return either a bare list or {"data": [...]}
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ticketsync.models.staff_log import StaffActionType
from ticketsync.models.ticket import TicketPriority, TicketStatus

_STATUSES = {s.value for s in TicketStatus}
_PRIORITIES = {p.value for p in TicketPriority}
_ACTION_TYPES = {a.value for a in StaffActionType}

_LIST_KEYS = ("data", "tickets", "logs", "staff_logs", "items", "results")


def extract_items(payload: Any) -> List[Dict[str, Any]]:
    """Pull the record list out of a list-endpoint response."""
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in _LIST_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
            if isinstance(value, dict):
                return extract_items(value)
    raise ValueError(f"Unrecognised list payload: {type(payload).__name__}")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO 8601 strings (with or without offset / trailing Z) to naive UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _person(raw: Dict[str, Any], role: str) -> Dict[str, Optional[str]]:
    nested = raw.get(role) if isinstance(raw.get(role), dict) else {}
    person_id = raw.get(f"{role}_id") or nested.get("id")
    return {
        f"{role}_id": str(person_id) if person_id is not None else None,
        f"{role}_name": raw.get(f"{role}_name") or nested.get("name"),
        f"{role}_email": raw.get(f"{role}_email") or nested.get("email"),
    }


def _require_record(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValueError(f"Record is not an object: {type(raw).__name__}")
    return raw


def _enum_value(value: Any, default: str, allowed: set, what: str) -> str:
    if value is None or value == "":
        value = default
    if not isinstance(value, str) or value.lower() not in allowed:
        raise ValueError(f"unknown {what} {value!r}")
    return value.lower()


def _require_id(raw: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return str(value)
    raise ValueError(f"Record has no identifier (tried {', '.join(keys)})")


def normalize_ticket(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a remote ticket dict into Ticket model field dict.

    Args:
        raw: One item from GET /tickets or the body of GET /tickets/{id}.

    Returns:
        Dict with keys matching Ticket columns (minus id / last_synced_at).

    Raises:
        ValueError: not an object, missing id or title, unknown or non-string
            status / priority, or an unparseable timestamp.
    """
    raw = _require_record(raw)
    external_id = _require_id(raw, "id", "ticket_id", "external_ticket_id")

    title = raw.get("title") or raw.get("subject")
    if not title:
        raise ValueError(f"Ticket {external_id} has no title")

    try:
        status = _enum_value(raw.get("status"), TicketStatus.OPEN.value, _STATUSES, "status")
        priority = _enum_value(
            raw.get("priority"), TicketPriority.MEDIUM.value, _PRIORITIES, "priority"
        )
    except ValueError as exc:
        raise ValueError(f"Ticket {external_id} has {exc}") from exc

    created_at = parse_datetime(raw.get("created_at"))
    if created_at is None:
        raise ValueError(f"Ticket {external_id} has no created_at")
    updated_at = parse_datetime(raw.get("updated_at")) or created_at

    requester = _person(raw, "requester")
    assignee = _person(raw, "assignee")

    return {
        "external_ticket_id": external_id,
        "ticket_number": str(raw.get("ticket_number") or raw.get("number") or external_id),
        "title": title,
        "description": raw.get("description"),
        "status": status,
        "priority": priority,
        "category": raw.get("category"),
        "department": raw.get("department"),
        "requester_id": requester["requester_id"],
        "requester_name": requester["requester_name"],
        "requester_email": requester["requester_email"],
        "assignee_id": assignee["assignee_id"],
        "assignee_name": assignee["assignee_name"],
        "created_at": created_at,
        "updated_at": updated_at,
        "resolved_at": parse_datetime(raw.get("resolved_at")),
        "due_date": parse_datetime(raw.get("due_date")),
        "tags": list(raw.get("tags") or []),
        "custom_fields": dict(raw.get("custom_fields") or {}),
    }


def normalize_staff_log(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a remote staff-log dict into StaffLog model field dict.

    The local ticket_id is NOT set here; the sync service resolves it against
    the ticket cache.

    Raises:
        ValueError: not an object, missing log / ticket / staff id, unknown
            action type, or an unparseable timestamp.
    """
    raw = _require_record(raw)
    external_id = _require_id(raw, "id", "log_id", "external_log_id")
    external_ticket_id = _require_id(raw, "ticket_id", "external_ticket_id")

    staff = raw.get("staff") if isinstance(raw.get("staff"), dict) else {}
    staff_id = raw.get("staff_id") or staff.get("id")
    if staff_id is None or staff_id == "":
        raise ValueError(f"Staff log {external_id} has no staff_id")

    try:
        action_type = _enum_value(
            raw.get("action_type") or raw.get("action"), "", _ACTION_TYPES, "action_type"
        )
    except ValueError as exc:
        raise ValueError(f"Staff log {external_id} has {exc}") from exc

    created_at = parse_datetime(raw.get("created_at"))
    if created_at is None:
        raise ValueError(f"Staff log {external_id} has no created_at")

    return {
        "external_log_id": external_id,
        "external_ticket_id": external_ticket_id,
        "staff_id": str(staff_id),
        "staff_name": raw.get("staff_name") or staff.get("name") or "",
        "staff_email": raw.get("staff_email") or staff.get("email"),
        "action_type": action_type,
        "action_details": dict(raw.get("action_details") or {}),
        "previous_value": _optional_str(raw.get("previous_value")),
        "new_value": _optional_str(raw.get("new_value")),
        "comment": raw.get("comment"),
        "time_spent_minutes": int(raw.get("time_spent_minutes") or 0),
        "created_at": created_at,
    }


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
