"""
Exclusivity window manager.

A mobile-exclusive lead is opened once, for a bounded set of agencies, for a
fixed window (EXCLUSIVE_WINDOW_HOURS, 24 by default):

- open_window creates the distribution record and one `assigned` assignment per
  selected agency. The unique lead_id constraint makes a second open fail with
  DuplicateDistributionError.
- record_view counts every view while the window is open and moves the
  agency's assignment to `viewed` on its first view.
- resolve records a purchase or dismissal.

Expiry is lazy: every read or action on a distribution first expires its open
assignments if the window has closed. sweep_expired_windows does the same for
every distribution and is meant for an optional periodic run.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID, uuid4

from config import get_settings
from domain.agency import EligibleAgency
from domain.assignment import Assignment, AssignmentStatus, ResponseAction
from domain.distribution import DistributionRecord, exclusive_window_end
from domain.errors import NotFoundError, WindowExpiredError
from domain.lead import Lead
from domain.time import resolve_now
from repositories import distribution_repository
from services.assignment_lifecycle import mark_resolved, mark_viewed

logger = logging.getLogger(__name__)

AGENCY_ACTIONS = frozenset({ResponseAction.PURCHASED, ResponseAction.DISMISSED})


def select_window_agencies(agencies: Sequence[EligibleAgency], limit: int) -> List[EligibleAgency]:
    """Highest territory priority first; ties keep their eligibility order."""

    ranked = sorted(enumerate(agencies), key=lambda pair: (-pair[1].territory_priority, pair[0]))
    return [agency for _, agency in ranked[:limit]]


def open_window(
    lead: Lead,
    agencies: Sequence[EligibleAgency],
    now: Optional[datetime] = None,
) -> DistributionRecord:
    """
    Open the exclusivity window for `lead`.

    Args:
        lead: The persisted lead
        agencies: Eligible agencies in eligibility order (non-empty)
        now: Window start (defaults to the current UTC time)

    Raises:
        ValueError: if `agencies` is empty.
        DuplicateDistributionError: a window (or any distribution) already exists for the lead.
        PersistenceError: database failure.
    """

    if not agencies:
        raise ValueError("agencies must not be empty")

    settings = get_settings()
    opened_at = resolve_now(now)
    selected = select_window_agencies(agencies, settings.max_exclusive_agencies)

    record = DistributionRecord(
        distribution_id=uuid4(),
        lead_id=lead.lead_id,
        is_exclusive=True,
        created_at=opened_at,
        available_until=exclusive_window_end(opened_at, settings.exclusive_window),
        priority_score=Decimal(max(a.territory_priority for a in selected)),
        location=lead.location.to_dict(),
    )
    distribution_repository.insert_distribution(record)
    distribution_repository.insert_assignments(
        [
            Assignment(
                assignment_id=uuid4(),
                distribution_id=record.distribution_id,
                lead_id=lead.lead_id,
                agency_id=agency.agency_id,
                assigned_at=opened_at,
                expires_at=record.available_until,
            )
            for agency in selected
        ]
    )
    logger.info(
        "Opened exclusive window %s for lead %s (%d agencies, until %s)",
        record.distribution_id,
        lead.lead_id,
        len(selected),
        record.available_until.isoformat(),
    )
    return record


def _require_distribution(distribution_id: UUID) -> DistributionRecord:
    record = distribution_repository.get_distribution(distribution_id)
    if record is None:
        raise NotFoundError(f"Distribution not found: {distribution_id}")
    return record


def _expire_if_due(record: DistributionRecord, now: datetime) -> bool:
    """Expire the record's open assignments when its window has closed."""

    if not record.is_expired(now):
        return False
    expired = distribution_repository.expire_overdue_assignments(now, record.distribution_id)
    if expired:
        logger.info("Expired %d assignment(s) on distribution %s", len(expired), record.distribution_id)
    return True


def get_distribution(distribution_id: UUID, now: Optional[datetime] = None) -> DistributionRecord:
    record = _require_distribution(distribution_id)
    _expire_if_due(record, resolve_now(now))
    return record


def list_assignments(distribution_id: UUID, now: Optional[datetime] = None) -> List[Assignment]:
    record = _require_distribution(distribution_id)
    _expire_if_due(record, resolve_now(now))
    return distribution_repository.list_assignments(distribution_id)


def get_distribution_for_lead(lead_id: UUID, now: Optional[datetime] = None) -> DistributionRecord:
    record = distribution_repository.get_distribution_for_lead(lead_id)
    if record is None:
        raise NotFoundError(f"Lead {lead_id} has not been distributed")
    _expire_if_due(record, resolve_now(now))
    return record


def list_agency_assignments(
    agency_id: UUID,
    statuses: Optional[Sequence[AssignmentStatus]] = None,
    now: Optional[datetime] = None,
    limit: int = 100,
) -> List[Assignment]:
    """An agency's assignments, newest first, with closed windows already expired."""

    distribution_repository.expire_overdue_assignments(resolve_now(now), agency_id=agency_id)
    return distribution_repository.list_assignments_for_agency(agency_id, statuses, limit)


def record_view(distribution_id: UUID, agency_id: UUID, now: Optional[datetime] = None) -> Assignment:
    """
    Count a view by `agency_id` and return its assignment.

    The first view moves the assignment to `viewed`. Repeat views only add to
    view_count. Agencies without an assignment on the distribution are refused
    and their attempt is not counted.

    Raises:
        NotFoundError: unknown distribution, or the agency holds no assignment on it.
        WindowExpiredError: the window has closed; open assignments are expired.
    """

    viewed_at = resolve_now(now)
    record = _require_distribution(distribution_id)
    if _expire_if_due(record, viewed_at):
        raise WindowExpiredError(distribution_id)

    assignment = distribution_repository.get_assignment(distribution_id, agency_id)
    if assignment is None:
        raise NotFoundError(f"Agency {agency_id} has no assignment on distribution {distribution_id}")

    if distribution_repository.increment_view_count(distribution_id, viewed_at) is None:
        raise WindowExpiredError(distribution_id)

    if assignment.is_terminal:
        return assignment
    return mark_viewed(assignment, viewed_at)


def resolve(
    distribution_id: UUID,
    agency_id: UUID,
    action: ResponseAction,
    now: Optional[datetime] = None,
) -> Assignment:
    """
    Record an agency's purchase or dismissal.

    Raises:
        ValueError: `action` is not purchased or dismissed.
        NotFoundError: unknown distribution or no assignment for the agency.
        AlreadyResolvedError: the assignment is terminal, including one that
            expired because the window closed before this call.
        InvalidTransitionError: the agency never viewed the lead.
    """

    if action not in AGENCY_ACTIONS:
        raise ValueError(f"Agencies can only purchase or dismiss, got '{action.value}'")

    resolved_at = resolve_now(now)
    record = _require_distribution(distribution_id)
    _expire_if_due(record, resolved_at)

    assignment = distribution_repository.get_assignment(distribution_id, agency_id)
    if assignment is None:
        raise NotFoundError(f"Agency {agency_id} has no assignment on distribution {distribution_id}")
    return mark_resolved(assignment, action, resolved_at)


def sweep_expired_windows(now: Optional[datetime] = None) -> List[Assignment]:
    """Expire every open assignment whose window has closed; returns those expired."""

    expired = distribution_repository.expire_overdue_assignments(resolve_now(now))
    logger.info("Expiry sweep closed %d assignment(s)", len(expired))
    return expired


__all__ = [
    "get_distribution",
    "get_distribution_for_lead",
    "list_agency_assignments",
    "list_assignments",
    "open_window",
    "record_view",
    "resolve",
    "select_window_agencies",
    "sweep_expired_windows",
]
