"""
Distribution statistics: per-agency assignment counts and rotation positions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Collection, Dict, List, Optional
from uuid import UUID

from domain.rotation import RotationCursor
from repositories.distribution_repository import list_assignment_rows
from repositories.rotation_repository import get_cursor, list_cursors
from repositories.rows import parse_utc_datetime


@dataclass(frozen=True, slots=True)
class AgencyDistributionStats:
    agency_id: UUID
    assignment_count: int
    last_assigned_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class DistributionStats:
    agencies: List[AgencyDistributionStats] = field(default_factory=list)
    cursors: List[RotationCursor] = field(default_factory=list)

    @property
    def total_assignments(self) -> int:
        return sum(a.assignment_count for a in self.agencies)


def get_distribution_stats(
    scope: Optional[str] = None,
    agency_ids: Optional[Collection[UUID]] = None,
) -> DistributionStats:
    """
    Args:
        scope: Only report this rotation cursor (all cursors when None)
        agency_ids: Only count assignments of these agencies

    Agencies are listed by assignment count, highest first.
    """

    counts: Dict[UUID, int] = {}
    latest: Dict[UUID, datetime] = {}
    for row in list_assignment_rows(agency_ids):
        agency_id = UUID(str(row["agency_id"]))
        counts[agency_id] = counts.get(agency_id, 0) + 1
        assigned_at = parse_utc_datetime(row["assigned_at"])
        if agency_id not in latest or assigned_at > latest[agency_id]:
            latest[agency_id] = assigned_at

    agencies = [
        AgencyDistributionStats(agency_id=agency_id, assignment_count=count, last_assigned_at=latest.get(agency_id))
        for agency_id, count in counts.items()
    ]
    agencies.sort(key=lambda a: (-a.assignment_count, str(a.agency_id)))

    cursors = [get_cursor(scope)] if scope is not None else list_cursors()
    return DistributionStats(agencies=agencies, cursors=cursors)


__all__ = ["AgencyDistributionStats", "DistributionStats", "get_distribution_stats"]
