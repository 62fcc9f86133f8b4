"""
Domain: Round-robin rotation cursor.

One cursor exists per rotation scope (portal industry, or "global"). Selection
over an ordered eligible list is:

    index    = position mod n
    selected = eligible[index]
    position = (position + 1) mod n

When the eligible list grows or shrinks between calls the stored position is
simply reinterpreted against the new length. Exact fairness holds only while
the eligible set is stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Optional, Sequence, TypeVar

from .time import require_utc_timestamp

GLOBAL_SCOPE = "global"

T = TypeVar("T")


def rotation_scope(industry: Optional[str]) -> str:
    """Scope key for a portal industry; blank industries share the global rotation."""

    if industry is None or not industry.strip():
        return GLOBAL_SCOPE
    return industry.strip().lower()


@dataclass(frozen=True, slots=True)
class RotationCursor:
    scope: str
    position: int = 0
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError("position must be >= 0")
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)


@dataclass(frozen=True, slots=True)
class RotationPick(Generic[T]):
    selected: T
    index: int
    next_position: int


def pick_next(position: int, eligible: Sequence[T]) -> RotationPick[T]:
    """Select from `eligible` at `position` and compute the advanced position."""

    if not eligible:
        raise ValueError("cannot rotate over an empty eligible list")
    if position < 0:
        raise ValueError("position must be >= 0")
    size = len(eligible)
    index = position % size
    return RotationPick(selected=eligible[index], index=index, next_position=(index + 1) % size)
