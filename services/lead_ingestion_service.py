"""
Lead ingestion orchestrator.

process_lead runs one portal submission to completion:

1. Normalize payload keys (services.lead_normalizer)
2. Validate required fields                       -> ValidationError
3. Duplicate gate (email / phone, trailing window) -> DuplicateLeadError
4. Persist the lead in `new`
5. Compute eligible agencies
   - none: the lead stays `new` without an agency (not a failure)
6. Round-robin assignment or exclusivity window, by portal mode or the
   payload's mobile-exclusive flag
7. Lead status -> `assigned` / `distributed`
8. Notify each assigned agency (fire-and-forget)
9. Append the audit entry

Nothing after step 4 rolls the lead back. A failure there is reported in the
result (outcome `assignment_failed`) and the lead remains available for manual
reassignment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID, uuid4

from config import get_settings
from domain.assignment import Assignment
from domain.audit import AuditEntry, AuditOutcome
from domain.errors import DistributionEngineError, DuplicateLeadError, NotFoundError, ValidationError
from domain.lead import Lead, LeadStatus
from domain.portal import DistributionMode, Portal
from domain.rotation import rotation_scope
from domain.time import resolve_now
from repositories.audit_repository import append_entry
from repositories.distribution_repository import list_assignments
from repositories.lead_repository import get_lead_by_id, insert_lead, update_lead_status
from services.duplicate_detector import check_duplicate
from services.eligibility_service import filter_eligible
from services.exclusivity_service import open_window
from services.lead_normalizer import LeadCandidate, normalize_payload, require_valid
from services.notification_service import notify_assignments
from services.round_robin_selector import assign_next

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestionResult:
    lead_id: Optional[UUID]
    assigned_agency_id: Optional[UUID] = None
    distribution_id: Optional[UUID] = None
    outcome: Optional[AuditOutcome] = None
    agency_ids: List[UUID] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.lead_id is not None and not self.errors


def distribution_mode_for(candidate: LeadCandidate, portal: Portal) -> DistributionMode:
    if candidate.mobile_exclusive:
        return DistributionMode.EXCLUSIVE
    return portal.distribution_mode or get_settings().default_distribution_mode


def _build_lead(candidate: LeadCandidate, created_at: datetime) -> Lead:
    return Lead(
        lead_id=uuid4(),
        portal_id=candidate.portal_id,
        name=candidate.name or "",
        location=candidate.location,
        raw_payload=dict(candidate.raw_payload),
        created_at=created_at,
        email=candidate.email,
        phone=candidate.phone,
        source=candidate.source,
        industry=candidate.industry,
    )


def _write_audit(result: IngestionResult, lead: Lead, now: datetime) -> None:
    entry = AuditEntry(
        lead_id=lead.lead_id,
        lead_snapshot=lead.snapshot(),
        outcome=result.outcome,
        timestamp=now,
        agency_id=result.assigned_agency_id,
    )
    try:
        append_entry(entry)
    except DistributionEngineError as exc:
        logger.error("Failed to write audit entry for lead %s: %s", lead.lead_id, exc)
        result.errors.append(f"Audit log write failed: {exc}")


def _write_lead_status(lead: Lead, result: IngestionResult, now: datetime) -> None:
    """Persist the lead's new status; a failure here never undoes the assignment."""

    try:
        update_lead_status(lead.lead_id, lead.status, lead.assigned_agency_id, updated_at=now)
    except DistributionEngineError as exc:
        logger.error("Lead %s distributed but its status update failed: %s", lead.lead_id, exc)
        result.errors.append(f"Lead status update failed: {exc}")


def _distribute(
    lead: Lead,
    candidate: LeadCandidate,
    portal: Portal,
    result: IngestionResult,
    now: datetime,
) -> tuple[Lead, List[Assignment]]:
    eligible = filter_eligible(lead.location)
    if not eligible:
        logger.info("No eligible agency for lead %s; left unassigned", lead.lead_id)
        result.outcome = AuditOutcome.CREATED_WITHOUT_AGENCY
        return lead, []

    if distribution_mode_for(candidate, portal) is DistributionMode.EXCLUSIVE:
        record = open_window(lead, eligible, now)
        result.distribution_id = record.distribution_id
        assignments = list_assignments(record.distribution_id)
        result.agency_ids = [a.agency_id for a in assignments]
        result.outcome = AuditOutcome.DISTRIBUTED_EXCLUSIVE
        lead = lead.with_status(LeadStatus.DISTRIBUTED)
        _write_lead_status(lead, result, now)
        return lead, assignments

    picked = assign_next(lead, [e.agency_id for e in eligible], rotation_scope(portal.industry), now)
    result.distribution_id = picked.distribution.distribution_id
    result.assigned_agency_id = picked.agency_id
    result.agency_ids = [picked.agency_id]
    result.outcome = AuditOutcome.ASSIGNED_TO_AGENCY
    lead = lead.with_status(LeadStatus.ASSIGNED, picked.agency_id)
    _write_lead_status(lead, result, now)
    return lead, [picked.assignment]


def process_lead(
    payload: Mapping[str, Any],
    portal: Portal,
    now: Optional[datetime] = None,
) -> IngestionResult:
    """
    Ingest one portal submission.

    Args:
        payload: Raw portal payload (kept verbatim on the lead)
        portal: Source portal
        now: Ingestion time (defaults to the current UTC time)

    Returns:
        IngestionResult; lead_id is always set once the lead was stored.

    Raises:
        ValidationError: required fields missing or the portal is inactive.
        DuplicateLeadError: same email or phone inside the duplicate window.
        PersistenceError: the lead itself could not be stored (retryable).
    """

    received_at = resolve_now(now)
    if not portal.is_active:
        raise ValidationError([f"Portal {portal.portal_id} is not active"])

    candidate = require_valid(normalize_payload(payload, portal))

    duplicate = check_duplicate(candidate, received_at)
    if duplicate.is_duplicate:
        logger.info("Rejected duplicate lead from portal %s: %s", portal.portal_id, duplicate.reason)
        raise DuplicateLeadError(duplicate.reason or "Duplicate lead", duplicate.duplicate_lead_id)

    lead = _build_lead(candidate, received_at)
    insert_lead(lead)
    result = IngestionResult(lead_id=lead.lead_id)

    assignments: List[Assignment] = []
    try:
        lead, assignments = _distribute(lead, candidate, portal, result, received_at)
    except DistributionEngineError as exc:
        logger.error("Assignment failed for lead %s: %s", lead.lead_id, exc)
        result.outcome = AuditOutcome.ASSIGNMENT_FAILED
        result.errors.append(str(exc))

    if assignments:
        notify_assignments(assignments, received_at)

    _write_audit(result, lead, received_at)
    return result


def process_leads(
    payloads: Iterable[Mapping[str, Any]],
    portal: Portal,
    now: Optional[datetime] = None,
) -> List[IngestionResult]:
    """
    Ingest a batch of submissions; one bad payload does not stop the batch.

    Rejected payloads (validation, duplicate, storage failure) come back with
    lead_id None and the reasons in errors.
    """

    results: List[IngestionResult] = []
    for index, payload in enumerate(payloads):
        try:
            results.append(process_lead(payload, portal, now))
        except ValidationError as exc:
            results.append(IngestionResult(lead_id=None, errors=list(exc.errors)))
        except DistributionEngineError as exc:
            logger.warning("Batch item %d rejected: %s", index, exc)
            results.append(IngestionResult(lead_id=None, errors=[str(exc)]))

    assigned = sum(1 for r in results if r.agency_ids)
    logger.info("Batch processed: %d payloads, %d distributed", len(results), assigned)
    return results


def change_lead_status(
    lead_id: UUID,
    status: LeadStatus,
    now: Optional[datetime] = None,
) -> Lead:
    """
    Move a stored lead to `status`.

    Raises:
        NotFoundError: unknown lead.
        InvalidTransitionError: the status table forbids the change.
    """

    lead = get_lead_by_id(lead_id)
    if lead is None:
        raise NotFoundError(f"Lead not found: {lead_id}")
    updated = lead.with_status(status)
    update_lead_status(lead_id, status, updated_at=resolve_now(now))
    return updated


__all__ = [
    "IngestionResult",
    "change_lead_status",
    "distribution_mode_for",
    "process_lead",
    "process_leads",
]
