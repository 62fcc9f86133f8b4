"""
Leads API Endpoints.

Portal webhook for submitting new leads.
"""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Body, HTTPException

from api.models import ErrorResponse, IngestionResponse
from domain.errors import DuplicateLeadError, PersistenceError, ValidationError
from repositories.portal_repository import get_portal_by_id
from services.lead_ingestion_service import process_lead

router = APIRouter()


@router.post(
    "/portals/{portal_id}/leads",
    response_model=IngestionResponse,
    status_code=201,
    summary="Submit Lead",
    description="Ingest a lead from a portal and distribute it to eligible agencies.",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def submit_lead(portal_id: UUID, payload: Dict[str, Any] = Body(...)):
    """
    Ingest one lead submission.

    The payload keys are flexible (`phone`, `phone_number`, `contact`, ...).
    A lead needs a name, an email or phone, and a zipcode, city or preferred
    location.

    **Outcomes:**
    - `assigned_to_agency`: round-robin assignment to one agency
    - `distributed_exclusive`: exclusivity window opened for up to 3 agencies
    - `created_without_agency`: no eligible agency; the lead is kept unassigned
    - `assignment_failed`: the lead was stored but distribution failed (see `errors`)

    **Example request:**
    ```json
    {
      "name": "Jane Doe",
      "email": "jane@example.com",
      "phone_number": "(214) 555-0100",
      "zip": "75001"
    }
    ```
    """
    try:
        portal = get_portal_by_id(portal_id)
        if portal is None:
            raise HTTPException(status_code=404, detail=f"Portal not found: {portal_id}")
        result = process_lead(payload, portal)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors)
    except DuplicateLeadError as e:
        raise HTTPException(status_code=409, detail=f"Duplicate lead: {e.reason}")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Failed to store lead: {str(e)}")

    return IngestionResponse(
        lead_id=result.lead_id,
        assigned_agency_id=result.assigned_agency_id,
        distribution_id=result.distribution_id,
        outcome=result.outcome.value,
        agency_ids=result.agency_ids,
        errors=result.errors,
    )
