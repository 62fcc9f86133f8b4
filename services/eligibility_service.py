"""
Agency eligibility service.

Computes, for one lead location, the ordered list of agencies allowed to
receive it:

1. Territory index lookup (active territories only)
2. Agency account must be active
3. Subscription status must be trial or active
4. Units used this period must be below the subscription's unit capacity

Output order is deterministic: agency created_at, then agency_id. The
round-robin cursor is only reproducible over a stable order.

An empty result is not an error; the caller records the lead as unassigned.
"""

from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from domain.agency import EligibleAgency, is_agency_eligible
from domain.lead import LeadLocation
from repositories.agency_repository import (
    count_assignments_since,
    get_agencies_by_ids,
    get_current_subscriptions,
)
from services.territory_index import lookup_matches

logger = logging.getLogger(__name__)


def filter_eligible(location: LeadLocation) -> List[EligibleAgency]:
    """
    Eligible agencies for `location`, in rotation order.

    Args:
        location: Lead location to match against territories

    Returns:
        List[EligibleAgency] (possibly empty)
    """

    matches = lookup_matches(location)
    if not matches:
        logger.info("No territory match for location %s", location.to_dict())
        return []

    agencies = get_agencies_by_ids(matches.keys())
    active = [agency for agency in agencies if agency.is_active()]
    if not active:
        return []

    subscriptions = get_current_subscriptions(a.agency_id for a in active)
    period_starts = {
        agency_id: subscription.period_start
        for agency_id, subscription in subscriptions.items()
        if subscription.allows_distribution() and subscription.unit_capacity is not None
    }
    units_used = count_assignments_since(period_starts)

    eligible: List[EligibleAgency] = []
    for agency in active:
        subscription = subscriptions.get(agency.agency_id)
        used = units_used.get(agency.agency_id, 0)
        if not is_agency_eligible(agency, subscription, used):
            logger.debug("Agency %s excluded (subscription/capacity)", agency.agency_id)
            continue
        eligible.append(
            EligibleAgency(
                agency_id=agency.agency_id,
                created_at=agency.created_at,
                territory_priority=matches[agency.agency_id],
                units_used=used,
                unit_capacity=subscription.unit_capacity if subscription else None,
            )
        )

    eligible.sort(key=lambda e: e.sort_key)
    return eligible


def eligible_agency_ids(location: LeadLocation) -> List[UUID]:
    """Ordered agency ids for `location` (see filter_eligible)."""

    return [e.agency_id for e in filter_eligible(location)]


__all__ = ["eligible_agency_ids", "filter_eligible"]
