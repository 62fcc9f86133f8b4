"""
Notification outbox repository (persistence).

"Agency has a new lead" events are written to `lead_notifications`, keyed by
(lead_id, agency_id). The push/email collaborator consumes the outbox; this
module only writes it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List
from uuid import UUID, uuid4

from repositories.client import get_client
from repositories.rows import execute, to_iso_utc

_NOTIFICATIONS_TABLE: str = "lead_notifications"

NEW_LEAD_EVENT = "agency_new_lead"


def upsert_new_lead_event(lead_id: UUID, agency_id: UUID, created_at: datetime) -> None:
    """Write the event once per (lead, agency); a repeat publish is a no-op."""

    payload = {
        "notification_id": str(uuid4()),
        "lead_id": str(lead_id),
        "agency_id": str(agency_id),
        "event": NEW_LEAD_EVENT,
        "created_at": to_iso_utc(created_at, name="created_at"),
    }
    execute(
        get_client()
        .table(_NOTIFICATIONS_TABLE)
        .upsert(payload, on_conflict="lead_id,agency_id", ignore_duplicates=True),
        "write notification event",
    )


def list_events_for_agency(agency_id: UUID) -> List[Dict[str, Any]]:
    return execute(
        get_client()
        .table(_NOTIFICATIONS_TABLE)
        .select("*")
        .eq("agency_id", str(agency_id))
        .order("created_at"),
        "list notification events",
    )


__all__ = ["NEW_LEAD_EVENT", "list_events_for_agency", "upsert_new_lead_event"]
