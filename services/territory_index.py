"""
Territory index service.

Maps a lead's location (zipcode/city/county/state) to the agencies holding a
matching active territory. Territory management helpers live here as free
functions over plain Territory values.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from domain.errors import DuplicateTerritoryError, NotFoundError
from domain.lead import LeadLocation
from domain.territory import Territory, TerritoryType, build_territory_index, normalize_territory_value
from domain.time import resolve_now
from repositories.territory_repository import (
    insert_territory,
    list_active_territories_for_location,
    list_territories_for_agency,
    set_territory_active,
)

logger = logging.getLogger(__name__)


def lookup_matches(location: LeadLocation) -> Dict[UUID, int]:
    """
    Agencies with an active territory matching `location`.

    Each agency appears once, mapped to its highest matching territory priority.
    An empty location yields an empty mapping.
    """

    if location.is_empty():
        return {}
    territories = list_active_territories_for_location(location)
    return build_territory_index(territories).matches(location)


def lookup(location: LeadLocation) -> set[UUID]:
    """Set of agency ids whose active territories intersect `location`."""

    return set(lookup_matches(location))


def list_active_territories(agency_id: UUID) -> List[Territory]:
    return list_territories_for_agency(agency_id, active_only=True)


def add_territory(
    agency_id: UUID,
    territory_type: TerritoryType,
    value: str,
    priority: int = 0,
    now: Optional[datetime] = None,
) -> Territory:
    """
    Give an agency a new active territory.

    Raises:
        DuplicateTerritoryError: the agency already holds this (type, value) actively.
        ValueError: invalid priority or empty value.
    """

    territory = Territory(
        territory_id=uuid4(),
        agency_id=agency_id,
        type=territory_type,
        value=value.strip(),
        priority=priority,
        is_active=True,
        created_at=resolve_now(now),
    )
    wanted = normalize_territory_value(territory_type, value)
    for existing in list_active_territories(agency_id):
        if existing.match_key == (territory_type, wanted):
            raise DuplicateTerritoryError(
                f"Agency {agency_id} already has an active {territory_type.value} territory '{value}'"
            )

    insert_territory(territory)
    logger.info("Territory %s %s added for agency %s", territory_type.value, value, agency_id)
    return territory


def deactivate_territory(territory_id: UUID) -> Territory:
    territory = set_territory_active(territory_id, False)
    if territory is None:
        raise NotFoundError(f"Territory not found: {territory_id}")
    logger.info("Territory %s deactivated for agency %s", territory_id, territory.agency_id)
    return territory


__all__ = [
    "add_territory",
    "deactivate_territory",
    "list_active_territories",
    "lookup",
    "lookup_matches",
]
