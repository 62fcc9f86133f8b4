"""
Territory repository (persistence).

Territories belong to the subscription collaborator; the distribution engine
reads them. The write helpers exist for the territory-management service and
for seeding, and enforce nothing beyond what the database enforces.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.territory import Territory, TerritoryType, location_keys
from domain.lead import LeadLocation
from repositories.client import get_client
from repositories.rows import execute, optional_iso_utc, parse_optional_datetime

_TERRITORIES_TABLE: str = "territories"


def _territory_to_row(territory: Territory) -> dict[str, Any]:
    territory_type, normalized = territory.match_key
    return {
        "territory_id": str(territory.territory_id),
        "agency_id": str(territory.agency_id),
        "type": territory_type.value,
        "value": territory.value,
        "normalized_value": normalized,
        "priority": territory.priority,
        "is_active": territory.is_active,
        "created_at": optional_iso_utc(territory.created_at, name="created_at"),
    }


def _row_to_territory(row: Mapping[str, Any]) -> Territory:
    return Territory(
        territory_id=UUID(str(row["territory_id"])),
        agency_id=UUID(str(row["agency_id"])),
        type=TerritoryType(str(row["type"])),
        value=str(row["value"]),
        priority=int(row.get("priority") or 0),
        is_active=bool(row.get("is_active", True)),
        created_at=parse_optional_datetime(row.get("created_at")),
    )


def list_active_territories_for_location(location: LeadLocation) -> List[Territory]:
    """
    Fetch active territories whose (type, normalized value) matches any location field.

    One query per populated field; returns an empty list when the location is empty.
    """

    client = get_client()
    territories: List[Territory] = []
    for territory_type, value in location_keys(location):
        rows = execute(
            client.table(_TERRITORIES_TABLE)
            .select("*")
            .eq("type", territory_type.value)
            .eq("normalized_value", value)
            .eq("is_active", True),
            "list territories",
        )
        territories.extend(_row_to_territory(row) for row in rows)
    return territories


def list_territories_for_agency(agency_id: UUID, *, active_only: bool = True) -> List[Territory]:
    query = get_client().table(_TERRITORIES_TABLE).select("*").eq("agency_id", str(agency_id))
    if active_only:
        query = query.eq("is_active", True)
    rows = execute(query.order("created_at"), "list agency territories")
    return [_row_to_territory(row) for row in rows]


def insert_territory(territory: Territory) -> None:
    execute(get_client().table(_TERRITORIES_TABLE).insert(_territory_to_row(territory)), "insert territory")


def set_territory_active(territory_id: UUID, is_active: bool) -> Optional[Territory]:
    rows = execute(
        get_client()
        .table(_TERRITORIES_TABLE)
        .update({"is_active": is_active})
        .eq("territory_id", str(territory_id)),
        "update territory",
    )
    return _row_to_territory(rows[0]) if rows else None


__all__ = [
    "insert_territory",
    "list_active_territories_for_location",
    "list_territories_for_agency",
    "set_territory_active",
]
