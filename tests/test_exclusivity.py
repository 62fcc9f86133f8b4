"""
Tests for `services/exclusivity_service.py` and `services/assignment_lifecycle.py`.

Covers contract rules:
- A window opens at most once per lead.
- Views are counted while the window is open; the first view moves the
  assignment to `viewed`.
- Resolving a terminal assignment fails and leaves it unchanged.
- Expiry is observed lazily on reads and actions after available_until.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from config import get_settings
from domain.agency import EligibleAgency
from domain.assignment import AssignmentStatus, ResponseAction
from domain.errors import (
    AlreadyResolvedError,
    DuplicateDistributionError,
    InvalidTransitionError,
    NotFoundError,
    WindowExpiredError,
)
from domain.lead import Lead, LeadLocation
from repositories.distribution_repository import get_assignment
from services.assignment_lifecycle import mark_notified, mark_resolved, mark_viewed
from services.exclusivity_service import (
    get_distribution,
    list_assignments,
    open_window,
    record_view,
    resolve,
    select_window_agencies,
    sweep_expired_windows,
)
from services.round_robin_selector import assign_next

T0 = datetime(2025, 4, 1, 8, 0, 0, tzinfo=timezone.utc)


def _eligible(index: int, priority: int = 0) -> EligibleAgency:
    return EligibleAgency(
        agency_id=UUID(int=index),
        created_at=T0 - timedelta(days=index),
        territory_priority=priority,
        units_used=0,
        unit_capacity=None,
    )


def _lead() -> Lead:
    return Lead(
        lead_id=uuid4(),
        portal_id=UUID(int=99),
        name="Mobile Lead",
        location=LeadLocation(zipcode="75001", state="TX"),
        raw_payload={"mobile_exclusive": True},
        created_at=T0,
    )


@pytest.fixture
def window(fake_db):
    agencies = [_eligible(1), _eligible(2)]
    return open_window(_lead(), agencies, T0)


def test_select_window_agencies_prefers_priority_and_is_bounded() -> None:
    agencies = [_eligible(1, 0), _eligible(2, 5), _eligible(3, 0), _eligible(4, 5), _eligible(5, 9)]

    selected = select_window_agencies(agencies, 3)

    assert [a.agency_id for a in selected] == [UUID(int=5), UUID(int=2), UUID(int=4)]


def test_open_window_creates_record_and_assignments(fake_db) -> None:
    agencies = [_eligible(1, 2), _eligible(2, 6), _eligible(3), _eligible(4)]

    record = open_window(_lead(), agencies, T0)

    assert record.is_exclusive
    assert record.available_until == T0 + timedelta(hours=24)
    assert record.priority_score == 6
    assignments = list_assignments(record.distribution_id, T0)
    assert len(assignments) == 3
    assert {a.status for a in assignments} == {AssignmentStatus.ASSIGNED}
    assert {a.expires_at for a in assignments} == {record.available_until}


def test_window_size_follows_settings(fake_db, monkeypatch) -> None:
    monkeypatch.setenv("MAX_EXCLUSIVE_AGENCIES", "1")
    monkeypatch.setenv("EXCLUSIVE_WINDOW_HOURS", "2")
    get_settings.cache_clear()

    record = open_window(_lead(), [_eligible(1), _eligible(2)], T0)

    assert record.available_until == T0 + timedelta(hours=2)
    assert len(list_assignments(record.distribution_id, T0)) == 1


def test_open_window_twice_fails(fake_db) -> None:
    lead = _lead()
    open_window(lead, [_eligible(1)], T0)

    with pytest.raises(DuplicateDistributionError):
        open_window(lead, [_eligible(1)], T0 + timedelta(minutes=1))

    assert len(fake_db.rows("distribution_records")) == 1


def test_record_view_counts_every_view(window) -> None:
    first = record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=5))
    again = record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=9))

    assert first.status is AssignmentStatus.VIEWED
    assert first.viewed_at == T0 + timedelta(minutes=5)
    assert again.viewed_at == T0 + timedelta(minutes=5)
    assert get_distribution(window.distribution_id, T0 + timedelta(minutes=10)).view_count == 2


def test_view_by_unassigned_agency_refused(window) -> None:
    with pytest.raises(NotFoundError):
        record_view(window.distribution_id, UUID(int=42), T0 + timedelta(hours=1))
    with pytest.raises(NotFoundError):
        resolve(window.distribution_id, UUID(int=42), ResponseAction.PURCHASED, T0 + timedelta(hours=1))

    assignments = list_assignments(window.distribution_id, T0 + timedelta(hours=1))
    assert [(a.agency_id, a.status) for a in assignments] == [
        (UUID(int=1), AssignmentStatus.ASSIGNED),
        (UUID(int=2), AssignmentStatus.ASSIGNED),
    ]
    assert get_distribution(window.distribution_id, T0 + timedelta(hours=1)).view_count == 0


def test_round_robin_lead_refuses_other_agencies(fake_db) -> None:
    picked = assign_next(_lead(), [UUID(int=1), UUID(int=2)], "insurance", T0)
    distribution_id = picked.distribution.distribution_id

    with pytest.raises(NotFoundError):
        record_view(distribution_id, UUID(int=7), T0 + timedelta(minutes=1))
    with pytest.raises(NotFoundError):
        resolve(distribution_id, UUID(int=7), ResponseAction.PURCHASED, T0 + timedelta(minutes=2))

    assignments = list_assignments(distribution_id, T0 + timedelta(minutes=3))
    assert [(a.agency_id, a.status) for a in assignments] == [(UUID(int=1), AssignmentStatus.ASSIGNED)]


def test_purchase_after_view(window) -> None:
    record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=5))

    purchased = resolve(window.distribution_id, UUID(int=1), ResponseAction.PURCHASED, T0 + timedelta(minutes=6))

    assert purchased.status is AssignmentStatus.PURCHASED
    assert purchased.responded_at == T0 + timedelta(minutes=6)


def test_resolve_twice_fails_and_keeps_state(window) -> None:
    record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=5))
    resolve(window.distribution_id, UUID(int=1), ResponseAction.PURCHASED, T0 + timedelta(minutes=6))

    with pytest.raises(AlreadyResolvedError):
        resolve(window.distribution_id, UUID(int=1), ResponseAction.DISMISSED, T0 + timedelta(minutes=7))

    stored = get_assignment(window.distribution_id, UUID(int=1))
    assert stored.status is AssignmentStatus.PURCHASED
    assert stored.response_action is ResponseAction.PURCHASED


def test_resolve_without_view_is_invalid(window) -> None:
    with pytest.raises(InvalidTransitionError):
        resolve(window.distribution_id, UUID(int=2), ResponseAction.DISMISSED, T0 + timedelta(minutes=1))


def test_resolve_rejects_expired_action(window) -> None:
    with pytest.raises(ValueError):
        resolve(window.distribution_id, UUID(int=1), ResponseAction.EXPIRED, T0)


def test_resolve_unknown_agency(window) -> None:
    with pytest.raises(NotFoundError):
        resolve(window.distribution_id, UUID(int=77), ResponseAction.PURCHASED, T0)


def test_lazy_expiry_on_read(window) -> None:
    record_view(window.distribution_id, UUID(int=1), T0 + timedelta(hours=1))
    later = T0 + timedelta(hours=24, minutes=30)

    assignments = list_assignments(window.distribution_id, later)

    assert {a.status for a in assignments} == {AssignmentStatus.EXPIRED}
    for assignment in assignments:
        assert assignment.response_action is ResponseAction.EXPIRED
        assert assignment.responded_at == later


def test_view_after_window_raises_and_expires(window) -> None:
    with pytest.raises(WindowExpiredError):
        record_view(window.distribution_id, UUID(int=1), T0 + timedelta(hours=24))

    stored = get_assignment(window.distribution_id, UUID(int=1))
    assert stored.status is AssignmentStatus.EXPIRED
    assert get_distribution(window.distribution_id, T0 + timedelta(hours=25)).view_count == 0


def test_purchase_after_window_observes_expiry(window) -> None:
    record_view(window.distribution_id, UUID(int=1), T0 + timedelta(hours=1))

    with pytest.raises(AlreadyResolvedError):
        resolve(window.distribution_id, UUID(int=1), ResponseAction.PURCHASED, T0 + timedelta(hours=25))

    assert get_assignment(window.distribution_id, UUID(int=1)).status is AssignmentStatus.EXPIRED


def test_expiry_leaves_resolved_assignments_alone(window) -> None:
    record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=1))
    resolve(window.distribution_id, UUID(int=1), ResponseAction.DISMISSED, T0 + timedelta(minutes=2))

    expired = sweep_expired_windows(T0 + timedelta(hours=30))

    assert [a.agency_id for a in expired] == [UUID(int=2)]
    assert get_assignment(window.distribution_id, UUID(int=1)).status is AssignmentStatus.DISMISSED


def test_sweep_before_window_end_is_noop(window) -> None:
    assert sweep_expired_windows(T0 + timedelta(hours=23)) == []


def test_unknown_distribution(fake_db) -> None:
    with pytest.raises(NotFoundError):
        get_distribution(uuid4(), T0)
    with pytest.raises(NotFoundError):
        record_view(uuid4(), UUID(int=1), T0)


def test_concurrent_writer_loses_with_already_resolved(window) -> None:
    viewed = record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=1))
    resolve(window.distribution_id, UUID(int=1), ResponseAction.PURCHASED, T0 + timedelta(minutes=2))

    # `viewed` is the stale copy a second writer read before the purchase.
    with pytest.raises(AlreadyResolvedError):
        mark_resolved(viewed, ResponseAction.DISMISSED, T0 + timedelta(minutes=3))


def test_mark_viewed_is_noop_when_already_viewed(window) -> None:
    viewed = record_view(window.distribution_id, UUID(int=1), T0 + timedelta(minutes=1))

    assert mark_viewed(viewed, T0 + timedelta(minutes=2)) == viewed


def test_mark_notified_stamps_once(window) -> None:
    assignment = get_assignment(window.distribution_id, UUID(int=2))

    notified = mark_notified(assignment, T0 + timedelta(seconds=1))
    mark_notified(assignment, T0 + timedelta(seconds=30))

    stored = get_assignment(window.distribution_id, UUID(int=2))
    assert notified.notified_at == T0 + timedelta(seconds=1)
    assert stored.notified_at == T0 + timedelta(seconds=1)
    assert stored.status is AssignmentStatus.ASSIGNED
