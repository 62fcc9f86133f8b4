"""
Agency repository (persistence).

Read access to agencies, their subscription snapshots and their unit usage.
Agency accounts and subscriptions are owned by other collaborators; nothing
here changes them.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping
from uuid import UUID

from domain.agency import Agency, AgencyStatus, AgencySubscription, SubscriptionStatus
from repositories.client import get_client
from repositories.rows import execute, execute_paged, parse_utc_datetime, to_iso_utc

_AGENCIES_TABLE: str = "agencies"
_SUBSCRIPTIONS_TABLE: str = "agency_subscriptions"
_ASSIGNMENTS_TABLE: str = "lead_assignments"


def _row_to_agency(row: Mapping[str, Any]) -> Agency:
    return Agency(
        agency_id=UUID(str(row["agency_id"])),
        business_name=str(row.get("business_name") or ""),
        status=AgencyStatus(str(row["status"]).lower()),
        created_at=parse_utc_datetime(row["created_at"]),
    )


def _row_to_subscription(row: Mapping[str, Any]) -> AgencySubscription:
    capacity = row.get("unit_capacity")
    return AgencySubscription(
        subscription_id=UUID(str(row["subscription_id"])),
        agency_id=UUID(str(row["agency_id"])),
        status=SubscriptionStatus(str(row["status"]).lower()),
        period_start=parse_utc_datetime(row["period_start"]),
        unit_capacity=int(capacity) if capacity is not None else None,
    )


def get_agencies_by_ids(agency_ids: Iterable[UUID]) -> List[Agency]:
    ids = [str(a) for a in agency_ids]
    if not ids:
        return []
    rows = execute(
        get_client().table(_AGENCIES_TABLE).select("*").in_("agency_id", ids),
        "fetch agencies",
    )
    return [_row_to_agency(row) for row in rows]


def get_current_subscriptions(agency_ids: Iterable[UUID]) -> Dict[UUID, AgencySubscription]:
    """
    Most recent subscription per agency (by period_start).

    Agencies without any subscription row are absent from the result.
    """

    ids = [str(a) for a in agency_ids]
    if not ids:
        return {}
    rows = execute(
        get_client()
        .table(_SUBSCRIPTIONS_TABLE)
        .select("*")
        .in_("agency_id", ids)
        .order("period_start", desc=True),
        "fetch agency subscriptions",
    )
    current: Dict[UUID, AgencySubscription] = {}
    for row in rows:
        subscription = _row_to_subscription(row)
        if subscription.agency_id not in current:
            current[subscription.agency_id] = subscription
    return current


def count_assignments_since(period_starts: Mapping[UUID, datetime]) -> Dict[UUID, int]:
    """
    Units used per agency: assignments received at or after that agency's period start.

    One paged query fetches rows since the earliest period start; the per-agency
    cut-off is applied here.
    """

    if not period_starts:
        return {}
    earliest = min(period_starts.values())
    agency_filter = [str(a) for a in period_starts]
    since = to_iso_utc(earliest, name="period_start")
    rows = execute_paged(
        lambda: get_client()
        .table(_ASSIGNMENTS_TABLE)
        .select("agency_id, assigned_at")
        .in_("agency_id", agency_filter)
        .gte("assigned_at", since)
        .order("assignment_id"),
        "count agency assignments",
    )
    counts: Counter[UUID] = Counter()
    for row in rows:
        agency_id = UUID(str(row["agency_id"]))
        if parse_utc_datetime(row["assigned_at"]) >= period_starts[agency_id]:
            counts[agency_id] += 1
    return {agency_id: counts.get(agency_id, 0) for agency_id in period_starts}


__all__ = [
    "count_assignments_since",
    "get_agencies_by_ids",
    "get_current_subscriptions",
]
