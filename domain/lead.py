"""
Domain: Lead entity.

Contract excerpts implemented here:
- A Lead represents a single prospective customer submission from a portal and is
  uniquely identified by lead_id (UUID).
- created_at is a UTC timestamp and is authoritative for duplicate windows.
- raw_payload is the portal's original submission, preserved verbatim for audit.
- Leads are never deleted; they end their life in the `archived` status.
- Lead status changes follow LEAD_STATUS_TRANSITIONS; anything else is rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional
from uuid import UUID

from .errors import InvalidTransitionError
from .time import require_utc_timestamp

_NON_DIGITS = re.compile(r"\D")


class LeadStatus(str, Enum):
    NEW = "new"
    DISTRIBUTED = "distributed"
    ASSIGNED = "assigned"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    LOST = "lost"
    ARCHIVED = "archived"


LEAD_STATUS_TRANSITIONS: Dict[LeadStatus, FrozenSet[LeadStatus]] = {
    LeadStatus.NEW: frozenset({LeadStatus.DISTRIBUTED, LeadStatus.ASSIGNED, LeadStatus.ARCHIVED}),
    LeadStatus.DISTRIBUTED: frozenset(
        {LeadStatus.ASSIGNED, LeadStatus.CONTACTED, LeadStatus.LOST, LeadStatus.ARCHIVED}
    ),
    LeadStatus.ASSIGNED: frozenset({LeadStatus.CONTACTED, LeadStatus.LOST, LeadStatus.ARCHIVED}),
    LeadStatus.CONTACTED: frozenset({LeadStatus.CONVERTED, LeadStatus.LOST, LeadStatus.ARCHIVED}),
    LeadStatus.CONVERTED: frozenset({LeadStatus.ARCHIVED}),
    LeadStatus.LOST: frozenset({LeadStatus.ARCHIVED}),
    LeadStatus.ARCHIVED: frozenset(),
}


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Reduce a phone number to its last 10 digits.

    Non-digit characters are stripped first, so "+1 (214) 555-0100" and
    "214.555.0100" normalize to the same value. Returns None when no digits remain.
    """

    if not phone:
        return None
    digits = _NON_DIGITS.sub("", str(phone))
    if not digits:
        return None
    return digits[-10:]


@dataclass(frozen=True, slots=True)
class LeadLocation:
    """Location attributes used for territory matching."""

    zipcode: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    preferred_location: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.zipcode, self.city, self.county, self.state, self.preferred_location))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "zipcode": self.zipcode,
            "city": self.city,
            "county": self.county,
            "state": self.state,
            "preferred_location": self.preferred_location,
        }


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Pure domain entity for a Lead.

    Immutability:
    - Status changes return a new instance via `with_status`; the original is
      left untouched.
    """

    lead_id: UUID
    portal_id: UUID
    name: str
    location: LeadLocation
    raw_payload: Mapping[str, Any]
    created_at: datetime
    status: LeadStatus = LeadStatus.NEW
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    industry: Optional[str] = None
    assigned_agency_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    @property
    def phone_normalized(self) -> Optional[str]:
        return normalize_phone(self.phone)

    def can_transition_to(self, status: LeadStatus) -> bool:
        return status in LEAD_STATUS_TRANSITIONS[self.status]

    def with_status(self, status: LeadStatus, assigned_agency_id: Optional[UUID] = None) -> "Lead":
        """Return a copy of this lead in `status`, enforcing the status transition table."""

        if not self.can_transition_to(status):
            raise InvalidTransitionError(
                f"Lead {self.lead_id} cannot go from '{self.status.value}' to '{status.value}'"
            )
        return replace(
            self,
            status=status,
            assigned_agency_id=assigned_agency_id if assigned_agency_id is not None else self.assigned_agency_id,
        )

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe copy of this lead for the audit log."""

        return {
            "lead_id": str(self.lead_id),
            "portal_id": str(self.portal_id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "location": self.location.to_dict(),
            "source": self.source,
            "industry": self.industry,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "raw_payload": dict(self.raw_payload),
        }
