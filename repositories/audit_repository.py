"""
Audit log repository (persistence).

Append-only: entries are inserted and read, never updated or deleted.
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID, uuid4

from domain.audit import AuditEntry, AuditOutcome
from repositories.client import get_client
from repositories.rows import execute, parse_optional_uuid, parse_utc_datetime, to_iso_utc

_AUDIT_TABLE: str = "audit_logs"


def _row_to_entry(row: Mapping[str, Any]) -> AuditEntry:
    return AuditEntry(
        lead_id=UUID(str(row["lead_id"])),
        lead_snapshot=row.get("lead_data") or {},
        outcome=AuditOutcome(str(row["action_status"])),
        timestamp=parse_utc_datetime(row["time_stamp"]),
        agency_id=parse_optional_uuid(row.get("agency_id")),
    )


def append_entry(entry: AuditEntry) -> UUID:
    """Insert one audit entry and return its id."""

    audit_id = uuid4()
    payload = {
        "audit_id": str(audit_id),
        "lead_id": str(entry.lead_id),
        "lead_data": dict(entry.lead_snapshot),
        "agency_id": str(entry.agency_id) if entry.agency_id else None,
        "action_status": entry.outcome.value,
        "time_stamp": to_iso_utc(entry.timestamp, name="timestamp"),
    }
    execute(get_client().table(_AUDIT_TABLE).insert(payload), "insert audit log")
    return audit_id


def list_entries_for_lead(lead_id: UUID) -> List[AuditEntry]:
    rows = execute(
        get_client().table(_AUDIT_TABLE).select("*").eq("lead_id", str(lead_id)).order("time_stamp"),
        "list audit logs",
    )
    return [_row_to_entry(row) for row in rows]


__all__ = ["append_entry", "list_entries_for_lead"]
