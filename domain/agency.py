"""
Domain: Agencies (lead buyers) and their subscription state.

Eligibility rules implemented here (territory matching lives in
domain/territory.py):
- The agency account must be active.
- The subscription must be in trial or active status.
- An agency that has used its whole unit capacity for the current period is
  excluded even when its territory matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_utc_timestamp


class AgencyStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    EXPIRED = "expired"


ELIGIBLE_SUBSCRIPTION_STATUSES = frozenset({SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE})


@dataclass(frozen=True, slots=True)
class Agency:
    agency_id: UUID
    business_name: str
    status: AgencyStatus
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    def is_active(self) -> bool:
        return self.status is AgencyStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class AgencySubscription:
    """
    Subscription snapshot read from the billing collaborator.

    unit_capacity of None means the plan has no unit limit.
    """

    subscription_id: UUID
    agency_id: UUID
    status: SubscriptionStatus
    period_start: datetime
    unit_capacity: Optional[int] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("period_start", self.period_start)
        if self.unit_capacity is not None and self.unit_capacity < 0:
            raise ValueError("unit_capacity must be >= 0")

    def allows_distribution(self) -> bool:
        return self.status in ELIGIBLE_SUBSCRIPTION_STATUSES

    def has_capacity(self, units_used: int) -> bool:
        if self.unit_capacity is None:
            return True
        return units_used < self.unit_capacity


@dataclass(frozen=True, slots=True)
class EligibleAgency:
    """An agency that passed every eligibility rule for one lead."""

    agency_id: UUID
    created_at: datetime
    territory_priority: int
    units_used: int
    unit_capacity: Optional[int]

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return self.created_at, str(self.agency_id)


def is_agency_eligible(
    agency: Agency,
    subscription: Optional[AgencySubscription],
    units_used: int,
) -> bool:
    """Subscription and account rules for one agency; territory is checked separately."""

    if not agency.is_active():
        return False
    if subscription is None or not subscription.allows_distribution():
        return False
    return subscription.has_capacity(units_used)
