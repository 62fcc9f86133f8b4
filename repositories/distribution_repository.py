"""
Distribution repository (persistence).

Persistence for distribution records and lead assignments.

Concurrency guarantees come from the database, not from this module:
- distribution_records.lead_id is unique, so a second record for the same
  lead fails with a unique violation (surfaced as DuplicateDistributionError).
- lead_assignments is unique on (distribution_id, agency_id).
- Assignment transitions are conditional updates on the prior status, so two
  racing writers cannot both move the same assignment.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Collection, Dict, List, Mapping, Optional
from uuid import UUID

from domain.assignment import Assignment, AssignmentStatus, ResponseAction
from domain.distribution import DistributionRecord
from domain.errors import DuplicateDistributionError
from repositories.client import get_client
from repositories.rows import (
    UniqueViolationError,
    execute,
    execute_paged,
    optional_iso_utc,
    parse_optional_datetime,
    parse_utc_datetime,
    to_iso_utc,
)

_DISTRIBUTIONS_TABLE: str = "distribution_records"
_ASSIGNMENTS_TABLE: str = "lead_assignments"


def _distribution_to_row(record: DistributionRecord) -> dict[str, Any]:
    return {
        "distribution_id": str(record.distribution_id),
        "lead_id": str(record.lead_id),
        "location": dict(record.location),
        "is_exclusive": record.is_exclusive,
        "available_until": optional_iso_utc(record.available_until, name="available_until"),
        "priority_score": str(record.priority_score),
        "view_count": record.view_count,
        "created_at": to_iso_utc(record.created_at, name="created_at"),
    }


def row_to_distribution(row: Mapping[str, Any]) -> DistributionRecord:
    return DistributionRecord(
        distribution_id=UUID(str(row["distribution_id"])),
        lead_id=UUID(str(row["lead_id"])),
        location=row.get("location") or {},
        is_exclusive=bool(row["is_exclusive"]),
        available_until=parse_optional_datetime(row.get("available_until")),
        priority_score=Decimal(str(row.get("priority_score") or "0")),
        view_count=int(row.get("view_count") or 0),
        created_at=parse_utc_datetime(row["created_at"]),
    )


def _assignment_to_row(assignment: Assignment) -> dict[str, Any]:
    return {
        "assignment_id": str(assignment.assignment_id),
        "distribution_id": str(assignment.distribution_id),
        "lead_id": str(assignment.lead_id),
        "agency_id": str(assignment.agency_id),
        "status": assignment.status.value,
        "assigned_at": to_iso_utc(assignment.assigned_at, name="assigned_at"),
        "notified_at": optional_iso_utc(assignment.notified_at, name="notified_at"),
        "viewed_at": optional_iso_utc(assignment.viewed_at, name="viewed_at"),
        "responded_at": optional_iso_utc(assignment.responded_at, name="responded_at"),
        "response_action": assignment.response_action.value if assignment.response_action else None,
        "expires_at": optional_iso_utc(assignment.expires_at, name="expires_at"),
    }


def row_to_assignment(row: Mapping[str, Any]) -> Assignment:
    action = row.get("response_action")
    return Assignment(
        assignment_id=UUID(str(row["assignment_id"])),
        distribution_id=UUID(str(row["distribution_id"])),
        lead_id=UUID(str(row["lead_id"])),
        agency_id=UUID(str(row["agency_id"])),
        status=AssignmentStatus(str(row["status"])),
        assigned_at=parse_utc_datetime(row["assigned_at"]),
        notified_at=parse_optional_datetime(row.get("notified_at")),
        viewed_at=parse_optional_datetime(row.get("viewed_at")),
        responded_at=parse_optional_datetime(row.get("responded_at")),
        response_action=ResponseAction(str(action)) if action else None,
        expires_at=parse_optional_datetime(row.get("expires_at")),
    )


# ----------------------------------------------------------------------------
# Distribution records
# ----------------------------------------------------------------------------


def insert_distribution(record: DistributionRecord) -> None:
    """
    Insert a distribution record.

    Raises:
        DuplicateDistributionError: a record already exists for this lead.
    """

    try:
        execute(
            get_client().table(_DISTRIBUTIONS_TABLE).insert(_distribution_to_row(record)),
            "insert distribution record",
        )
    except UniqueViolationError as exc:
        raise DuplicateDistributionError(record.lead_id) from exc


def get_distribution(distribution_id: UUID) -> Optional[DistributionRecord]:
    rows = execute(
        get_client()
        .table(_DISTRIBUTIONS_TABLE)
        .select("*")
        .eq("distribution_id", str(distribution_id))
        .limit(1),
        "fetch distribution record",
    )
    return row_to_distribution(rows[0]) if rows else None


def get_distribution_for_lead(lead_id: UUID) -> Optional[DistributionRecord]:
    rows = execute(
        get_client().table(_DISTRIBUTIONS_TABLE).select("*").eq("lead_id", str(lead_id)).limit(1),
        "fetch distribution record by lead",
    )
    return row_to_distribution(rows[0]) if rows else None


def increment_view_count(distribution_id: UUID, now: datetime) -> Optional[int]:
    """
    Atomically add one view while the window is open.

    Returns the new view count, or None when the window has already closed
    (the record is left unchanged).
    """

    rows = execute(
        get_client().rpc(
            "increment_distribution_view",
            {"p_distribution_id": str(distribution_id), "p_now": to_iso_utc(now, name="now")},
        ),
        "increment view count",
    )
    if not rows or rows[0] is None:
        return None
    return int(rows[0])


# ----------------------------------------------------------------------------
# Assignments
# ----------------------------------------------------------------------------


def insert_assignments(assignments: List[Assignment]) -> None:
    """
    Insert assignments in one request.

    Raises:
        UniqueViolationError: an agency already holds an assignment for this distribution.
    """

    if not assignments:
        return
    execute(
        get_client().table(_ASSIGNMENTS_TABLE).insert([_assignment_to_row(a) for a in assignments]),
        "insert assignments",
    )


def get_assignment(distribution_id: UUID, agency_id: UUID) -> Optional[Assignment]:
    rows = execute(
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .select("*")
        .eq("distribution_id", str(distribution_id))
        .eq("agency_id", str(agency_id))
        .limit(1),
        "fetch assignment",
    )
    return row_to_assignment(rows[0]) if rows else None


def list_assignments(distribution_id: UUID) -> List[Assignment]:
    rows = execute(
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .select("*")
        .eq("distribution_id", str(distribution_id))
        .order("assigned_at"),
        "list assignments",
    )
    return [row_to_assignment(row) for row in rows]


def list_assignments_for_agency(
    agency_id: UUID,
    statuses: Optional[Collection[AssignmentStatus]] = None,
    limit: int = 100,
) -> List[Assignment]:
    query = get_client().table(_ASSIGNMENTS_TABLE).select("*").eq("agency_id", str(agency_id))
    if statuses:
        query = query.in_("status", [s.value for s in statuses])
    rows = execute(query.order("assigned_at", desc=True).limit(limit), "list agency assignments")
    return [row_to_assignment(row) for row in rows]


def save_transition(previous: Assignment, updated: Assignment) -> Optional[Assignment]:
    """
    Persist `updated` only if the stored row is still in `previous.status`.

    Returns the stored assignment, or None when another writer moved it first.
    """

    payload: Dict[str, Any] = {
        "status": updated.status.value,
        "viewed_at": optional_iso_utc(updated.viewed_at, name="viewed_at"),
        "responded_at": optional_iso_utc(updated.responded_at, name="responded_at"),
        "response_action": updated.response_action.value if updated.response_action else None,
        "notified_at": optional_iso_utc(updated.notified_at, name="notified_at"),
    }
    rows = execute(
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .update(payload)
        .eq("assignment_id", str(previous.assignment_id))
        .eq("status", previous.status.value),
        "update assignment",
    )
    return row_to_assignment(rows[0]) if rows else None


def expire_overdue_assignments(
    now: datetime,
    distribution_id: Optional[UUID] = None,
    agency_id: Optional[UUID] = None,
) -> List[Assignment]:
    """
    Move assigned/viewed assignments whose window closed at or before `now` to expired.

    Limited to one distribution (or one agency) when given, otherwise a sweep
    over every distribution. Conditional on the open statuses, so
    terminal rows are never touched. Returns the assignments expired.
    """

    stamp = to_iso_utc(now, name="now")
    query = (
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .update(
            {
                "status": AssignmentStatus.EXPIRED.value,
                "responded_at": stamp,
                "response_action": ResponseAction.EXPIRED.value,
            }
        )
        .in_("status", [AssignmentStatus.ASSIGNED.value, AssignmentStatus.VIEWED.value])
        .lte("expires_at", stamp)
    )
    if distribution_id is not None:
        query = query.eq("distribution_id", str(distribution_id))
    if agency_id is not None:
        query = query.eq("agency_id", str(agency_id))
    rows = execute(query, "expire assignments")
    return [row_to_assignment(row) for row in rows]


def list_open_assignments_due(now: datetime, limit: int = 1000) -> List[Assignment]:
    """Open assignments whose window closed at or before `now` (read-only)."""

    rows = execute(
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .select("*")
        .in_("status", [AssignmentStatus.ASSIGNED.value, AssignmentStatus.VIEWED.value])
        .lte("expires_at", to_iso_utc(now, name="now"))
        .order("expires_at")
        .limit(limit),
        "list assignments due for expiry",
    )
    return [row_to_assignment(row) for row in rows]


def stamp_notified(assignment_id: UUID, notified_at: datetime) -> None:
    execute(
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .update({"notified_at": to_iso_utc(notified_at, name="notified_at")})
        .eq("assignment_id", str(assignment_id))
        .is_("notified_at", "null"),
        "stamp assignment notification",
    )


def list_assignment_rows(scope_agency_ids: Optional[Collection[UUID]] = None) -> List[Dict[str, Any]]:
    """Raw (agency_id, assigned_at) rows for reporting."""

    def build_query():
        query = get_client().table(_ASSIGNMENTS_TABLE).select("agency_id, assigned_at")
        if scope_agency_ids:
            query = query.in_("agency_id", [str(a) for a in scope_agency_ids])
        return query.order("assignment_id")

    return execute_paged(build_query, "list assignment rows")


__all__ = [
    "expire_overdue_assignments",
    "get_assignment",
    "get_distribution",
    "get_distribution_for_lead",
    "increment_view_count",
    "insert_assignments",
    "insert_distribution",
    "list_assignment_rows",
    "list_assignments",
    "list_assignments_for_agency",
    "list_open_assignments_due",
    "row_to_assignment",
    "row_to_distribution",
    "save_transition",
    "stamp_notified",
]
