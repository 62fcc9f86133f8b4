"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Ingestion Models
# ============================================================================

class IngestionResponse(BaseModel):
    """Outcome of ingesting one portal submission."""
    lead_id: UUID
    assigned_agency_id: Optional[UUID] = None
    distribution_id: Optional[UUID] = None
    outcome: str  # "assigned_to_agency", "distributed_exclusive", ...
    agency_ids: List[UUID] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "assigned_agency_id": "123e4567-e89b-12d3-a456-426614174001",
                "distribution_id": "123e4567-e89b-12d3-a456-426614174002",
                "outcome": "assigned_to_agency",
                "agency_ids": ["123e4567-e89b-12d3-a456-426614174001"],
                "errors": []
            }
        }
    )


# ============================================================================
# Distribution Models
# ============================================================================

class AssignmentResponse(BaseModel):
    """One agency's assignment on a distributed lead."""
    assignment_id: UUID
    distribution_id: UUID
    lead_id: UUID
    agency_id: UUID
    status: str  # "assigned", "viewed", "purchased", "dismissed", "expired"
    assigned_at: datetime
    notified_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    response_action: Optional[str] = None
    expires_at: Optional[datetime] = None


class DistributionResponse(BaseModel):
    """Distribution record with its assignments."""
    distribution_id: UUID
    lead_id: UUID
    is_exclusive: bool
    created_at: datetime
    available_until: Optional[datetime] = None
    priority_score: Decimal
    view_count: int
    location: Dict[str, Any]
    assignments: List[AssignmentResponse]


class ResolveRequest(BaseModel):
    """Agency response to a lead."""
    action: Literal["purchased", "dismissed"] = Field(
        ...,
        description="Purchase or dismiss the lead"
    )

    model_config = ConfigDict(json_schema_extra={"example": {"action": "purchased"}})


# ============================================================================
# Stats Models
# ============================================================================

class AgencyStatsResponse(BaseModel):
    agency_id: UUID
    assignment_count: int
    last_assigned_at: Optional[datetime] = None


class RotationCursorResponse(BaseModel):
    scope: str
    position: int
    updated_at: Optional[datetime] = None


class DistributionStatsResponse(BaseModel):
    """Per-agency assignment totals and rotation positions."""
    total_assignments: int
    agencies: List[AgencyStatsResponse]
    cursors: List[RotationCursorResponse]


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
