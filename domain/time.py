"""
Domain time utilities (pure).

Centralized timestamp helpers shared by every domain entity.

The distribution engine compares timestamps across leads, windows and
assignments, so every timestamp it stores is a UTC, timezone-aware datetime.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    """Current time as a UTC-aware datetime."""

    return datetime.now(timezone.utc)


def resolve_now(now: datetime | None) -> datetime:
    """Return `now` when given (validated), otherwise the current UTC time."""

    if now is None:
        return utc_now()
    require_utc_timestamp("now", now)
    return now
