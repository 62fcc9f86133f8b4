"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead domain entity.
No business rules (validation, duplicate policy, distribution) belong here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.lead import Lead, LeadLocation, LeadStatus
from repositories.client import get_client
from repositories.rows import (
    execute,
    parse_optional_uuid,
    parse_utc_datetime,
    to_iso_utc,
)

# Supabase table name for Lead records.
# Keep this aligned with migrations/001_lead_distribution_engine.sql.
_LEADS_TABLE: str = "leads"


def _lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    location = lead.location
    return {
        "lead_id": str(lead.lead_id),
        "portal_id": str(lead.portal_id),
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "phone_normalized": lead.phone_normalized,
        "zipcode": location.zipcode,
        "city": location.city,
        "county": location.county,
        "state": location.state,
        "preferred_location": location.preferred_location,
        "source": lead.source,
        "industry": lead.industry,
        "raw_payload": dict(lead.raw_payload),
        "status": lead.status.value,
        "assigned_agency_id": str(lead.assigned_agency_id) if lead.assigned_agency_id else None,
        "created_at": to_iso_utc(lead.created_at, name="created_at"),
    }


def _row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    return Lead(
        lead_id=UUID(str(row["lead_id"])),
        portal_id=UUID(str(row["portal_id"])),
        name=str(row["name"]),
        email=row.get("email") or None,
        phone=row.get("phone") or None,
        location=LeadLocation(
            zipcode=row.get("zipcode") or None,
            city=row.get("city") or None,
            county=row.get("county") or None,
            state=row.get("state") or None,
            preferred_location=row.get("preferred_location") or None,
        ),
        source=row.get("source") or None,
        industry=row.get("industry") or None,
        raw_payload=row.get("raw_payload") or {},
        status=LeadStatus(str(row.get("status") or LeadStatus.NEW.value)),
        assigned_agency_id=parse_optional_uuid(row.get("assigned_agency_id")),
        created_at=parse_utc_datetime(row["created_at"]),
    )


def insert_lead(lead: Lead) -> None:
    """
    Insert a Lead into Supabase.

    Raises:
    - PersistenceError if Supabase returns an error response.
    - ValueError/TypeError for invalid domain values (e.g., timestamps).
    """

    execute(get_client().table(_LEADS_TABLE).insert(_lead_to_row(lead)), "insert lead")


def get_lead_by_id(lead_id: UUID) -> Lead | None:
    """
    Fetch a Lead by ID.

    Returns:
    - Lead if found
    - None if no record exists for the given ID
    """

    rows = execute(
        get_client().table(_LEADS_TABLE).select("*").eq("lead_id", str(lead_id)).limit(1),
        "fetch lead",
    )
    if not rows:
        return None
    return _row_to_lead(rows[0])


def update_lead_status(
    lead_id: UUID,
    status: LeadStatus,
    assigned_agency_id: Optional[UUID] = None,
    *,
    updated_at: datetime,
) -> None:
    """Persist a lead status change (the caller validates the transition)."""

    payload: dict[str, Any] = {
        "status": status.value,
        "updated_at": to_iso_utc(updated_at, name="updated_at"),
    }
    if assigned_agency_id is not None:
        payload["assigned_agency_id"] = str(assigned_agency_id)

    execute(
        get_client().table(_LEADS_TABLE).update(payload).eq("lead_id", str(lead_id)),
        "update lead status",
    )


def find_recent_lead_by_email(email: str, since: datetime) -> Optional[UUID]:
    """Return the id of a lead with exactly this email created at or after `since`."""

    rows = execute(
        get_client()
        .table(_LEADS_TABLE)
        .select("lead_id")
        .eq("email", email)
        .gte("created_at", to_iso_utc(since, name="since"))
        .limit(1),
        "look up leads by email",
    )
    return UUID(str(rows[0]["lead_id"])) if rows else None


def find_recent_lead_by_phone(phone_normalized: str, since: datetime) -> Optional[UUID]:
    """Return the id of a lead with the same last-10-digit phone created at or after `since`."""

    rows = execute(
        get_client()
        .table(_LEADS_TABLE)
        .select("lead_id")
        .eq("phone_normalized", phone_normalized)
        .gte("created_at", to_iso_utc(since, name="since"))
        .limit(1),
        "look up leads by phone",
    )
    return UUID(str(rows[0]["lead_id"])) if rows else None


def list_leads_by_status(status: LeadStatus, limit: int = 100) -> List[Lead]:
    """List leads in one status, oldest first (e.g. unassigned leads for manual review)."""

    rows = execute(
        get_client()
        .table(_LEADS_TABLE)
        .select("*")
        .eq("status", status.value)
        .order("created_at")
        .limit(limit),
        "list leads",
    )
    return [_row_to_lead(row) for row in rows]


__all__ = [
    "find_recent_lead_by_email",
    "find_recent_lead_by_phone",
    "get_lead_by_id",
    "insert_lead",
    "list_leads_by_status",
    "update_lead_status",
]
