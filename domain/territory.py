"""
Domain: Territories and the territory index.

A Territory is an (agency, type, value) tuple an agency has purchased. The
subscription collaborator owns these rows; the distribution engine only reads
them.

Contract excerpts implemented here:
- type is one of zipcode, city, county, state.
- priority is a tie-break weight in [0, 10]; higher wins.
- At most one active territory per (agency, type, value).
- Index lookups are a set union across territory types: an agency matching a
  lead by zipcode and by city is counted once.
- A lookup with no location fields returns an empty result, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from .lead import LeadLocation
from .time import require_utc_timestamp

MIN_PRIORITY = 0
MAX_PRIORITY = 10


class TerritoryType(str, Enum):
    ZIPCODE = "zipcode"
    CITY = "city"
    COUNTY = "county"
    STATE = "state"


def normalize_territory_value(territory_type: TerritoryType, value: Optional[str]) -> Optional[str]:
    """
    Canonical form used on both sides of a territory match.

    Zipcodes keep their first five characters, states are upper-cased, and
    city/county names are case-folded with whitespace collapsed.
    """

    if value is None:
        return None
    text = " ".join(str(value).split())
    if not text:
        return None
    if territory_type is TerritoryType.ZIPCODE:
        return text.replace(" ", "")[:5]
    if territory_type is TerritoryType.STATE:
        return text.upper()
    return text.casefold()


@dataclass(frozen=True, slots=True)
class Territory:
    territory_id: UUID
    agency_id: UUID
    type: TerritoryType
    value: str
    priority: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            raise ValueError(f"priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")
        if not str(self.value).strip():
            raise ValueError("territory value must not be empty")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def match_key(self) -> Tuple[TerritoryType, Optional[str]]:
        return self.type, normalize_territory_value(self.type, self.value)


def location_keys(location: LeadLocation) -> list[Tuple[TerritoryType, str]]:
    """Territory keys a lead location can match, one per populated field."""

    candidates = (
        (TerritoryType.ZIPCODE, location.zipcode),
        (TerritoryType.CITY, location.city),
        (TerritoryType.COUNTY, location.county),
        (TerritoryType.STATE, location.state),
    )
    keys = []
    for territory_type, raw in candidates:
        value = normalize_territory_value(territory_type, raw)
        if value:
            keys.append((territory_type, value))
    return keys


@dataclass(slots=True)
class TerritoryIndex:
    """
    In-memory index from (type, normalized value) to agency priorities.

    Built from active territories only; inactive rows are ignored at build time.
    """

    _entries: Dict[Tuple[TerritoryType, str], Dict[UUID, int]] = field(default_factory=dict)

    def add(self, territory: Territory) -> None:
        if not territory.is_active:
            return
        territory_type, value = territory.match_key
        if not value:
            return
        agencies = self._entries.setdefault((territory_type, value), {})
        agencies[territory.agency_id] = max(agencies.get(territory.agency_id, MIN_PRIORITY), territory.priority)

    def matches(self, location: LeadLocation) -> Dict[UUID, int]:
        """Agencies matching `location`, each mapped to its highest matching priority."""

        result: Dict[UUID, int] = {}
        for key in location_keys(location):
            for agency_id, priority in self._entries.get(key, {}).items():
                result[agency_id] = max(result.get(agency_id, MIN_PRIORITY), priority)
        return result

    def lookup(self, location: LeadLocation) -> set[UUID]:
        return set(self.matches(location))


def build_territory_index(territories: Iterable[Territory]) -> TerritoryIndex:
    index = TerritoryIndex()
    for territory in territories:
        index.add(territory)
    return index
