"""
Lead payload normalization and validation.

Portals send the same concepts under different key names ("phone",
"phone_number", "contact", "mobile", ...). This module maps a raw payload onto
one LeadCandidate and checks the required fields before anything is stored.

Required fields:
- name
- email or phone
- a location: zipcode, city, or preferred_location
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from domain.errors import ValidationError
from domain.lead import LeadLocation, normalize_phone
from domain.portal import DistributionMode, Portal

# Accepted source keys per concept, in lookup order.
NAME_KEYS = ("name", "lead_name", "full_name", "fullName", "leadName", "customer_name")
FIRST_NAME_KEYS = ("first_name", "firstName")
LAST_NAME_KEYS = ("last_name", "lastName")
EMAIL_KEYS = ("email", "email_address", "emailAddress", "mail")
PHONE_KEYS = ("phone", "phone_number", "phoneNumber", "contact", "mobile", "telephone")
ZIPCODE_KEYS = ("zipcode", "zip", "zip_code", "zipCode", "postal_code", "postalCode")
CITY_KEYS = ("city", "town")
COUNTY_KEYS = ("county",)
STATE_KEYS = ("state", "state_code", "stateCode", "region")
PREFERRED_LOCATION_KEYS = ("preferred_location", "preferredLocation", "location")
EXCLUSIVE_KEYS = ("mobile_exclusive", "mobileExclusive", "is_mobile_exclusive", "isMobileExclusive")

_TRUTHY = {"1", "true", "yes", "y", "on"}


def _first_text(payload: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _flag(payload: Mapping[str, Any], keys: Sequence[str]) -> bool:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, bool):
            return value
        if value is not None and str(value).strip().lower() in _TRUTHY:
            return True
    return False


@dataclass(frozen=True, slots=True)
class LeadCandidate:
    """A normalized, not yet persisted lead."""

    portal_id: UUID
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    location: LeadLocation
    source: str
    industry: Optional[str]
    mobile_exclusive: bool
    raw_payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def phone_normalized(self) -> Optional[str]:
        return normalize_phone(self.phone)


def normalize_payload(payload: Mapping[str, Any], portal: Portal) -> LeadCandidate:
    """
    Map a raw portal payload onto a LeadCandidate.

    The payload itself is kept untouched as raw_payload.
    """

    name = _first_text(payload, NAME_KEYS)
    if name is None:
        parts = [_first_text(payload, FIRST_NAME_KEYS), _first_text(payload, LAST_NAME_KEYS)]
        joined = " ".join(p for p in parts if p)
        name = joined or None

    email = _first_text(payload, EMAIL_KEYS)
    zipcode = _first_text(payload, ZIPCODE_KEYS)
    state = _first_text(payload, STATE_KEYS)

    mobile_exclusive = _flag(payload, EXCLUSIVE_KEYS)
    mode = str(payload.get("distribution_mode") or "").strip().lower()
    if mode == DistributionMode.EXCLUSIVE.value:
        mobile_exclusive = True

    return LeadCandidate(
        portal_id=portal.portal_id,
        name=name,
        email=email.lower() if email else None,
        phone=_first_text(payload, PHONE_KEYS),
        location=LeadLocation(
            zipcode=zipcode,
            city=_first_text(payload, CITY_KEYS),
            county=_first_text(payload, COUNTY_KEYS),
            state=state.upper() if state else None,
            preferred_location=_first_text(payload, PREFERRED_LOCATION_KEYS),
        ),
        source=portal.name or "external_portal",
        industry=portal.industry,
        mobile_exclusive=mobile_exclusive,
        raw_payload=payload,
    )


def validate_candidate(candidate: LeadCandidate) -> List[str]:
    """Return the list of validation errors (empty when the candidate is valid)."""

    errors: List[str] = []
    if not candidate.name:
        errors.append("Lead name is required")
    if not candidate.portal_id:
        errors.append("Portal ID is required")
    if not candidate.email and not candidate.phone_normalized:
        errors.append("Either email or phone number is required")
    location = candidate.location
    if not (location.zipcode or location.city or location.preferred_location):
        errors.append("Either zipcode, city or preferred location is required")
    return errors


def require_valid(candidate: LeadCandidate) -> LeadCandidate:
    """
    Raises:
        ValidationError: listing every missing field.
    """

    errors = validate_candidate(candidate)
    if errors:
        raise ValidationError(errors)
    return candidate


__all__ = ["LeadCandidate", "normalize_payload", "require_valid", "validate_candidate"]
