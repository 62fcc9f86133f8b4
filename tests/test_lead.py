"""
Tests for `domain/lead.py`.

Covers contract rules:
- created_at is required and must be a UTC timestamp.
- raw_payload is preserved as provided.
- Phone numbers normalize to their last 10 digits.
- Lead status changes follow the transition table; anything else is rejected.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from domain.errors import InvalidTransitionError
from domain.lead import Lead, LeadLocation, LeadStatus, normalize_phone

LEAD_ID = UUID("00000000-0000-0000-0000-000000000001")
PORTAL_ID = UUID("00000000-0000-0000-0000-0000000000aa")
AGENCY_ID = UUID("00000000-0000-0000-0000-0000000000bb")
CREATED = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _lead(**overrides) -> Lead:
    fields = dict(
        lead_id=LEAD_ID,
        portal_id=PORTAL_ID,
        name="Jane Doe",
        location=LeadLocation(zipcode="75001"),
        raw_payload={"name": "Jane Doe"},
        created_at=CREATED,
    )
    fields.update(overrides)
    return Lead(**fields)


def test_lead_created_at_must_be_utc() -> None:
    """Verify created_at must be timezone-aware UTC (offset 0)."""

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=-5))))


def test_lead_preserves_raw_payload_identity() -> None:
    raw = {"a": 1, "nested": {"b": 2}}

    lead = _lead(raw_payload=raw)

    assert lead.raw_payload is raw
    assert lead.status is LeadStatus.NEW
    assert lead.assigned_agency_id is None


def test_lead_is_immutable() -> None:
    lead = _lead()

    with pytest.raises(FrozenInstanceError):
        lead.status = LeadStatus.ASSIGNED  # type: ignore[misc]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+1 (214) 555-0100", "2145550100"),
        ("214.555.0100", "2145550100"),
        ("555-0100", "5550100"),
        ("no digits", None),
        (None, None),
    ],
)
def test_normalize_phone(raw, expected) -> None:
    assert normalize_phone(raw) == expected


def test_phone_normalized_matches_across_formats() -> None:
    a = _lead(phone="+1 (214) 555-0100")
    b = _lead(phone="2145550100")

    assert a.phone_normalized == b.phone_normalized == "2145550100"


def test_with_status_returns_new_instance() -> None:
    lead = _lead()

    assigned = lead.with_status(LeadStatus.ASSIGNED, AGENCY_ID)

    assert assigned.status is LeadStatus.ASSIGNED
    assert assigned.assigned_agency_id == AGENCY_ID
    assert lead.status is LeadStatus.NEW
    assert lead.assigned_agency_id is None


def test_with_status_keeps_agency_when_not_given() -> None:
    lead = _lead().with_status(LeadStatus.ASSIGNED, AGENCY_ID)

    contacted = lead.with_status(LeadStatus.CONTACTED)

    assert contacted.assigned_agency_id == AGENCY_ID


@pytest.mark.parametrize(
    "start, target",
    [
        (LeadStatus.NEW, LeadStatus.CONVERTED),
        (LeadStatus.ASSIGNED, LeadStatus.NEW),
        (LeadStatus.ARCHIVED, LeadStatus.NEW),
        (LeadStatus.CONVERTED, LeadStatus.LOST),
    ],
)
def test_invalid_status_transitions_rejected(start, target) -> None:
    lead = _lead(status=start)

    with pytest.raises(InvalidTransitionError):
        lead.with_status(target)


def test_archived_reachable_from_every_live_status() -> None:
    for status in LeadStatus:
        if status is LeadStatus.ARCHIVED:
            continue
        assert _lead(status=status).can_transition_to(LeadStatus.ARCHIVED)


def test_location_is_empty() -> None:
    assert LeadLocation().is_empty()
    assert not LeadLocation(city="Dallas").is_empty()


def test_snapshot_is_json_safe() -> None:
    snapshot = _lead(email="jane@example.com").snapshot()

    assert snapshot["lead_id"] == str(LEAD_ID)
    assert snapshot["portal_id"] == str(PORTAL_ID)
    assert snapshot["location"]["zipcode"] == "75001"
    assert snapshot["created_at"] == CREATED.isoformat()
    assert snapshot["status"] == "new"
