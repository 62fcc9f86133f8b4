"""
Round-robin agency selection.

Fairness contract:
- One persisted cursor per rotation scope (portal industry or "global").
- index = cursor mod n; selected = eligible[index]; cursor = (index + 1) mod n.
- Selection, the assignment insert and the cursor advance happen in one
  database transaction (assign_round_robin), so a failure can never advance the
  cursor without an assignment or record an assignment without advancing it.
- The cursor survives restarts because it only lives in the database.

When the eligible list changes size between calls the cursor is reinterpreted
against the new length; exact fairness holds only while the eligible set is stable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID, uuid4

from domain.assignment import Assignment
from domain.distribution import DistributionRecord
from domain.lead import Lead
from domain.rotation import RotationCursor, RotationPick, pick_next
from domain.time import resolve_now
from repositories.rotation_repository import assign_round_robin_atomic, get_cursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoundRobinAssignment:
    scope: str
    slot: int
    distribution: DistributionRecord
    assignment: Assignment

    @property
    def agency_id(self) -> UUID:
        return self.assignment.agency_id


def next_agency(eligible: Sequence[UUID], scope: str) -> RotationPick[UUID]:
    """
    Preview which agency the rotation would pick next, without advancing it.

    Raises:
        ValueError: if `eligible` is empty.
    """

    return pick_next(get_cursor(scope).position, eligible)


def assign_next(
    lead: Lead,
    eligible: Sequence[UUID],
    scope: str,
    now: Optional[datetime] = None,
) -> RoundRobinAssignment:
    """
    Assign `lead` to the next agency in rotation and advance the cursor atomically.

    Args:
        lead: The persisted lead
        eligible: Eligible agency ids in deterministic rotation order
        scope: Rotation scope key
        now: Assignment time (defaults to the current UTC time)

    Raises:
        ValueError: if `eligible` is empty.
        DuplicateDistributionError: the lead was already distributed.
        PersistenceError: database failure (nothing was written).
    """

    if not eligible:
        raise ValueError("eligible must not be empty")

    assigned_at = resolve_now(now)
    location = lead.location.to_dict()
    result = assign_round_robin_atomic(
        scope=scope,
        lead_id=lead.lead_id,
        distribution_id=uuid4(),
        assignment_id=uuid4(),
        agency_ids=list(eligible),
        location=location,
        now=assigned_at,
    )

    distribution = DistributionRecord(
        distribution_id=result.distribution_id,
        lead_id=lead.lead_id,
        is_exclusive=False,
        created_at=assigned_at,
        location=location,
    )
    assignment = Assignment(
        assignment_id=result.assignment_id,
        distribution_id=result.distribution_id,
        lead_id=lead.lead_id,
        agency_id=result.agency_id,
        assigned_at=assigned_at,
    )
    logger.info(
        "Assigned lead %s to agency %s (round-robin scope=%s slot=%d/%d)",
        lead.lead_id,
        result.agency_id,
        scope,
        result.slot,
        len(eligible),
    )
    return RoundRobinAssignment(scope=scope, slot=result.slot, distribution=distribution, assignment=assignment)


def rotation_state(scope: str) -> RotationCursor:
    return get_cursor(scope)


__all__ = [
    "RoundRobinAssignment",
    "assign_next",
    "next_agency",
    "rotation_state",
]
