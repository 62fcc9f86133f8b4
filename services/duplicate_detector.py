"""
Duplicate lead detection.

Detection rules (trailing window, 24 hours by default):
- Exact email match (emails are stored lower-cased)
- Same phone number after stripping non-digits, compared on the last 10 digits

Either match makes the candidate a duplicate.

Duplicate suppression is a quality heuristic, not a correctness guarantee: any
lookup failure is logged and the candidate is treated as NOT a duplicate so
ingestion is never blocked by it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from config import get_settings
from domain.time import resolve_now
from repositories.lead_repository import find_recent_lead_by_email, find_recent_lead_by_phone
from services.lead_normalizer import LeadCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DuplicateCheck:
    is_duplicate: bool
    reason: Optional[str] = None
    duplicate_lead_id: Optional[UUID] = None


NOT_DUPLICATE = DuplicateCheck(is_duplicate=False)


def check_duplicate(
    candidate: LeadCandidate,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> DuplicateCheck:
    """
    Look for an earlier lead with the same email or phone inside the window.

    Args:
        candidate: Normalized lead about to be ingested
        now: Reference time (defaults to the current UTC time)
        window: Trailing window (defaults to DUPLICATE_WINDOW_HOURS)

    Returns:
        DuplicateCheck; never raises for lookup failures.
    """

    since = resolve_now(now) - (window or get_settings().duplicate_window)

    try:
        if candidate.email:
            duplicate_id = find_recent_lead_by_email(candidate.email, since)
            if duplicate_id is not None:
                return DuplicateCheck(True, "Email duplicate", duplicate_id)

        phone = candidate.phone_normalized
        if phone:
            duplicate_id = find_recent_lead_by_phone(phone, since)
            if duplicate_id is not None:
                return DuplicateCheck(True, "Phone duplicate", duplicate_id)
    except Exception as exc:
        logger.warning("Duplicate check failed, treating lead as new: %s", exc)
        return NOT_DUPLICATE

    return NOT_DUPLICATE


def is_duplicate(candidate: LeadCandidate, now: Optional[datetime] = None) -> bool:
    return check_duplicate(candidate, now).is_duplicate


__all__ = ["DuplicateCheck", "check_duplicate", "is_duplicate"]
