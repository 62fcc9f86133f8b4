"""
Domain: Distribution records.

One DistributionRecord exists per distributed lead (unique on lead_id).

- Exclusive records (mobile-exclusive leads) carry a hard `available_until`
  equal to creation time plus the exclusivity window (24 hours).
- Round-robin records have no window: available_until is None and they never expire.
- After available_until passes the record is closed: no further views are counted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

from .time import require_utc_timestamp

EXCLUSIVE_WINDOW = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class DistributionRecord:
    distribution_id: UUID
    lead_id: UUID
    is_exclusive: bool
    created_at: datetime
    available_until: Optional[datetime] = None
    priority_score: Decimal = Decimal("0")
    view_count: int = 0
    location: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.available_until is not None:
            require_utc_timestamp("available_until", self.available_until)
            if self.available_until < self.created_at:
                raise ValueError("available_until must not precede created_at")
        if self.is_exclusive and self.available_until is None:
            raise ValueError("exclusive distributions require available_until")
        if self.view_count < 0:
            raise ValueError("view_count must be >= 0")

    def is_expired(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return self.available_until is not None and now >= self.available_until

    def with_view(self, now: datetime) -> "DistributionRecord":
        """Return a copy with one more view; views after the window closes are rejected."""

        if self.is_expired(now):
            raise ValueError("cannot record a view after available_until")
        return replace(self, view_count=self.view_count + 1)


def exclusive_window_end(created_at: datetime, window: timedelta = EXCLUSIVE_WINDOW) -> datetime:
    require_utc_timestamp("created_at", created_at)
    return created_at + window
