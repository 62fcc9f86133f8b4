"""
Rotation repository (persistence).

Round-robin cursors live in the `rotation_cursors` table, one row per scope.
The cursor is never written from Python: selection, distribution insert,
assignment insert and cursor advance all run inside the
`assign_round_robin` PostgreSQL function, which locks the cursor row
(SELECT ... FOR UPDATE) for the duration of one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from domain.errors import DuplicateDistributionError, PersistenceError
from domain.rotation import RotationCursor
from repositories.client import get_client
from repositories.rows import (
    UniqueViolationError,
    execute,
    parse_optional_datetime,
    to_iso_utc,
)

_CURSORS_TABLE: str = "rotation_cursors"


@dataclass(frozen=True, slots=True)
class AtomicRotationResult:
    """Result from the assign_round_robin PostgreSQL function."""

    distribution_id: UUID
    assignment_id: UUID
    agency_id: UUID
    slot: int
    next_position: int


def _row_to_cursor(row: Mapping[str, Any]) -> RotationCursor:
    return RotationCursor(
        scope=str(row["scope"]),
        position=int(row.get("position") or 0),
        updated_at=parse_optional_datetime(row.get("updated_at")),
    )


def get_cursor(scope: str) -> RotationCursor:
    """Current cursor for `scope`; a scope never used before starts at position 0."""

    rows = execute(
        get_client().table(_CURSORS_TABLE).select("*").eq("scope", scope).limit(1),
        "fetch rotation cursor",
    )
    if not rows:
        return RotationCursor(scope=scope)
    return _row_to_cursor(rows[0])


def list_cursors() -> List[RotationCursor]:
    rows = execute(get_client().table(_CURSORS_TABLE).select("*").order("scope"), "list rotation cursors")
    return [_row_to_cursor(row) for row in rows]


def assign_round_robin_atomic(
    *,
    scope: str,
    lead_id: UUID,
    distribution_id: UUID,
    assignment_id: UUID,
    agency_ids: Sequence[UUID],
    location: Mapping[str, Any],
    now: datetime,
    expires_at: Optional[datetime] = None,
) -> AtomicRotationResult:
    """
    Select the next agency and record the assignment in one transaction.

    The function:
    - Locks (or creates) the cursor row for `scope`
    - Picks agency_ids[position mod n]
    - Inserts the distribution record and the assignment
    - Stores (index + 1) mod n as the new position
    A failure at any step rolls back all of them.

    Raises:
        DuplicateDistributionError: the lead already has a distribution record.
        PersistenceError: any other database failure.
    """

    if not agency_ids:
        raise ValueError("agency_ids must not be empty")

    params = {
        "p_scope": scope,
        "p_lead_id": str(lead_id),
        "p_distribution_id": str(distribution_id),
        "p_assignment_id": str(assignment_id),
        "p_agency_ids": [str(a) for a in agency_ids],
        "p_location": dict(location),
        "p_now": to_iso_utc(now, name="now"),
        "p_expires_at": to_iso_utc(expires_at, name="expires_at") if expires_at else None,
    }

    try:
        rows = execute(get_client().rpc("assign_round_robin", params), "assign round robin")
    except UniqueViolationError as exc:
        raise DuplicateDistributionError(lead_id) from exc

    if not rows or not isinstance(rows[0], Mapping):
        raise PersistenceError("assign_round_robin returned no result")
    result = rows[0]
    return AtomicRotationResult(
        distribution_id=UUID(str(result["distribution_id"])),
        assignment_id=UUID(str(result["assignment_id"])),
        agency_id=UUID(str(result["agency_id"])),
        slot=int(result["slot"]),
        next_position=int(result["next_position"]),
    )


__all__ = [
    "AtomicRotationResult",
    "assign_round_robin_atomic",
    "get_cursor",
    "list_cursors",
]
