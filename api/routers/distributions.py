"""
Distributions API Endpoints.

Agency actions on distributed leads (view, purchase, dismiss) and
distribution statistics.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from api.models import (
    AgencyStatsResponse,
    AssignmentResponse,
    DistributionResponse,
    DistributionStatsResponse,
    ErrorResponse,
    ResolveRequest,
    RotationCursorResponse,
)
from domain.assignment import Assignment, AssignmentStatus, ResponseAction
from domain.errors import (
    DistributionEngineError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    WindowExpiredError,
)
from services import exclusivity_service
from services.distribution_stats import get_distribution_stats

router = APIRouter()

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    410: {"model": ErrorResponse},
}


def _to_http(exc: DistributionEngineError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, WindowExpiredError):
        return HTTPException(status_code=410, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _assignment_response(assignment: Assignment) -> AssignmentResponse:
    return AssignmentResponse(
        assignment_id=assignment.assignment_id,
        distribution_id=assignment.distribution_id,
        lead_id=assignment.lead_id,
        agency_id=assignment.agency_id,
        status=assignment.status.value,
        assigned_at=assignment.assigned_at,
        notified_at=assignment.notified_at,
        viewed_at=assignment.viewed_at,
        responded_at=assignment.responded_at,
        response_action=assignment.response_action.value if assignment.response_action else None,
        expires_at=assignment.expires_at,
    )


def _distribution_response(distribution_id: UUID) -> DistributionResponse:
    try:
        record = exclusivity_service.get_distribution(distribution_id)
        assignments = exclusivity_service.list_assignments(distribution_id)
    except DistributionEngineError as e:
        raise _to_http(e)

    return DistributionResponse(
        distribution_id=record.distribution_id,
        lead_id=record.lead_id,
        is_exclusive=record.is_exclusive,
        created_at=record.created_at,
        available_until=record.available_until,
        priority_score=record.priority_score,
        view_count=record.view_count,
        location=dict(record.location),
        assignments=[_assignment_response(a) for a in assignments],
    )


@router.get(
    "/distributions/{distribution_id}",
    response_model=DistributionResponse,
    summary="Get Distribution",
    responses=_ERROR_RESPONSES,
)
def get_distribution(distribution_id: UUID):
    """
    Distribution record and its assignments.

    Assignments whose exclusivity window has closed are reported as `expired`.
    """
    return _distribution_response(distribution_id)


@router.get(
    "/leads/{lead_id}/distribution",
    response_model=DistributionResponse,
    summary="Get Lead Distribution",
    responses=_ERROR_RESPONSES,
)
def get_lead_distribution(lead_id: UUID):
    try:
        record = exclusivity_service.get_distribution_for_lead(lead_id)
    except DistributionEngineError as e:
        raise _to_http(e)
    return _distribution_response(record.distribution_id)


@router.get(
    "/agencies/{agency_id}/assignments",
    response_model=List[AssignmentResponse],
    summary="List Agency Assignments",
)
def list_agency_assignments(
    agency_id: UUID,
    status: Optional[List[str]] = Query(None, description="Filter by status (repeatable)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results to return"),
):
    """
    An agency's assignments, newest first.

    **Example usage:**
    - Open leads: `GET /api/v1/agencies/{agency_id}/assignments?status=assigned&status=viewed`
    """
    statuses = None
    if status:
        try:
            statuses = [AssignmentStatus(s) for s in status]
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Must be one of {[s.value for s in AssignmentStatus]}",
            )

    try:
        assignments = exclusivity_service.list_agency_assignments(agency_id, statuses, limit=limit)
    except DistributionEngineError as e:
        raise _to_http(e)
    return [_assignment_response(a) for a in assignments]


@router.post(
    "/distributions/{distribution_id}/assignments/{agency_id}/view",
    response_model=AssignmentResponse,
    summary="Record View",
    responses=_ERROR_RESPONSES,
)
def view_distribution(distribution_id: UUID, agency_id: UUID):
    """
    Record that an agency opened the lead.

    Returns 404 when the agency is not assigned to the distribution and 410
    once the exclusivity window has closed.
    """
    try:
        assignment = exclusivity_service.record_view(distribution_id, agency_id)
    except DistributionEngineError as e:
        raise _to_http(e)
    return _assignment_response(assignment)


@router.post(
    "/distributions/{distribution_id}/assignments/{agency_id}/resolve",
    response_model=AssignmentResponse,
    summary="Purchase or Dismiss",
    responses=_ERROR_RESPONSES,
)
def resolve_distribution(distribution_id: UUID, agency_id: UUID, request: ResolveRequest):
    """
    Purchase or dismiss a viewed lead.

    **Errors:**
    - 404: unknown distribution or agency not assigned
    - 409: already resolved (including expired) or never viewed
    """
    try:
        assignment = exclusivity_service.resolve(
            distribution_id,
            agency_id,
            ResponseAction(request.action),
        )
    except DistributionEngineError as e:
        raise _to_http(e)
    return _assignment_response(assignment)


@router.get(
    "/distribution/stats",
    response_model=DistributionStatsResponse,
    summary="Distribution Statistics",
)
def distribution_stats(
    scope: Optional[str] = Query(None, description="Rotation scope (portal industry or 'global')"),
):
    """Assignment counts per agency and the current rotation cursor(s)."""
    try:
        stats = get_distribution_stats(scope)
    except DistributionEngineError as e:
        raise _to_http(e)

    return DistributionStatsResponse(
        total_assignments=stats.total_assignments,
        agencies=[
            AgencyStatsResponse(
                agency_id=a.agency_id,
                assignment_count=a.assignment_count,
                last_assigned_at=a.last_assigned_at,
            )
            for a in stats.agencies
        ],
        cursors=[
            RotationCursorResponse(scope=c.scope, position=c.position, updated_at=c.updated_at)
            for c in stats.cursors
        ],
    )
