"""
Domain: Lead portals (external lead sources).

A portal decides how its leads are distributed:
- round_robin: one agency per lead, rotating through the eligible agencies.
- exclusive:   a 24-hour exclusivity window shared by a bounded set of agencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID


class DistributionMode(str, Enum):
    ROUND_ROBIN = "round_robin"
    EXCLUSIVE = "exclusive"


@dataclass(frozen=True, slots=True)
class Portal:
    portal_id: UUID
    name: str
    industry: Optional[str] = None
    distribution_mode: Optional[DistributionMode] = None
    is_active: bool = True
