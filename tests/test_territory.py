"""
Tests for `domain/territory.py` and `services/territory_index.py`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from domain.errors import DuplicateTerritoryError, NotFoundError
from domain.lead import LeadLocation
from domain.territory import (
    Territory,
    TerritoryType,
    build_territory_index,
    location_keys,
    normalize_territory_value,
)
from services.territory_index import add_territory, deactivate_territory, lookup, lookup_matches

AGENCY_A = UUID("00000000-0000-0000-0000-00000000000a")
AGENCY_B = UUID("00000000-0000-0000-0000-00000000000b")
CREATED = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _territory(agency_id: UUID, territory_type: TerritoryType, value: str, priority: int = 0, active: bool = True):
    return Territory(
        territory_id=uuid4(),
        agency_id=agency_id,
        type=territory_type,
        value=value,
        priority=priority,
        is_active=active,
    )


@pytest.mark.parametrize(
    "territory_type, raw, expected",
    [
        (TerritoryType.ZIPCODE, "75001-1234", "75001"),
        (TerritoryType.STATE, " tx ", "TX"),
        (TerritoryType.CITY, "  New   York ", "new york"),
        (TerritoryType.COUNTY, "Dallas", "dallas"),
        (TerritoryType.CITY, "   ", None),
    ],
)
def test_normalize_territory_value(territory_type, raw, expected) -> None:
    assert normalize_territory_value(territory_type, raw) == expected


def test_priority_bounds() -> None:
    with pytest.raises(ValueError):
        _territory(AGENCY_A, TerritoryType.ZIPCODE, "75001", priority=11)
    with pytest.raises(ValueError):
        _territory(AGENCY_A, TerritoryType.ZIPCODE, "75001", priority=-1)


def test_location_keys_skip_empty_fields() -> None:
    keys = location_keys(LeadLocation(zipcode="75001", state="tx"))

    assert keys == [(TerritoryType.ZIPCODE, "75001"), (TerritoryType.STATE, "TX")]


def test_index_unions_matches_and_keeps_highest_priority() -> None:
    index = build_territory_index(
        [
            _territory(AGENCY_A, TerritoryType.ZIPCODE, "75001", priority=2),
            _territory(AGENCY_A, TerritoryType.CITY, "Addison", priority=7),
            _territory(AGENCY_B, TerritoryType.STATE, "TX", priority=1),
            _territory(AGENCY_B, TerritoryType.CITY, "Dallas", priority=9, active=False),
        ]
    )

    matches = index.matches(LeadLocation(zipcode="75001", city="ADDISON", state="TX"))

    assert matches == {AGENCY_A: 7, AGENCY_B: 1}
    assert index.lookup(LeadLocation(city="Dallas")) == set()


def test_empty_location_matches_nothing() -> None:
    index = build_territory_index([_territory(AGENCY_A, TerritoryType.STATE, "TX")])

    assert index.lookup(LeadLocation()) == set()


def test_lookup_reads_active_territories(fake_db) -> None:
    agency_a = fake_db.add_agency(CREATED, territories=[("zipcode", "75001", 3), ("city", "dallas", 5)])
    agency_b = fake_db.add_agency(CREATED, territories=[("state", "TX", 0)])
    fake_db.add_agency(CREATED, territories=[("zipcode", "90210", 0)])

    location = LeadLocation(zipcode="75001", city="Dallas", state="TX")

    assert lookup(location) == {agency_a, agency_b}
    assert lookup_matches(location) == {agency_a: 5, agency_b: 0}
    assert lookup(LeadLocation()) == set()


def test_add_territory_rejects_active_duplicate(fake_db) -> None:
    agency_id = fake_db.add_agency(CREATED, territories=[])

    add_territory(agency_id, TerritoryType.CITY, "Dallas", priority=4, now=CREATED)

    with pytest.raises(DuplicateTerritoryError):
        add_territory(agency_id, TerritoryType.CITY, " dallas ", now=CREATED)
    assert lookup_matches(LeadLocation(city="DALLAS")) == {agency_id: 4}


def test_deactivated_territory_stops_matching(fake_db) -> None:
    agency_id = fake_db.add_agency(CREATED, territories=[])
    territory = add_territory(agency_id, TerritoryType.ZIPCODE, "75001", now=CREATED)

    deactivate_territory(territory.territory_id)

    assert lookup(LeadLocation(zipcode="75001")) == set()
    # Re-adding after deactivation is allowed.
    add_territory(agency_id, TerritoryType.ZIPCODE, "75001", now=CREATED)
    assert lookup(LeadLocation(zipcode="75001")) == {agency_id}


def test_deactivate_unknown_territory(fake_db) -> None:
    with pytest.raises(NotFoundError):
        deactivate_territory(uuid4())
