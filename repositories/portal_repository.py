"""
Portal repository (persistence).

Read-only access to registered lead portals.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from domain.portal import DistributionMode, Portal
from repositories.client import get_client
from repositories.rows import execute

_PORTALS_TABLE: str = "portals"


def _row_to_portal(row: Mapping[str, Any]) -> Portal:
    mode = row.get("distribution_mode")
    return Portal(
        portal_id=UUID(str(row["portal_id"])),
        name=str(row.get("portal_name") or ""),
        industry=row.get("industry") or None,
        distribution_mode=DistributionMode(str(mode)) if mode else None,
        is_active=bool(row.get("is_active", True)),
    )


def get_portal_by_id(portal_id: UUID) -> Optional[Portal]:
    rows = execute(
        get_client().table(_PORTALS_TABLE).select("*").eq("portal_id", str(portal_id)).limit(1),
        "fetch portal",
    )
    return _row_to_portal(rows[0]) if rows else None


__all__ = ["get_portal_by_id"]
