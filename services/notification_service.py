"""
Notification collaborator.

Publishes "agency has a new lead" events to the notification outbox. Delivery
is fire-and-forget: a failure is logged and never reaches the caller, and it
never changes assignment state.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from domain.assignment import Assignment
from domain.time import resolve_now
from repositories.notification_repository import upsert_new_lead_event
from services.assignment_lifecycle import mark_notified

logger = logging.getLogger(__name__)


def publish_new_lead(lead_id: UUID, agency_id: UUID, now: Optional[datetime] = None) -> bool:
    """
    Write one new-lead event for `agency_id`.

    Returns:
        True when the event was written, False when publishing failed.
    """

    try:
        upsert_new_lead_event(lead_id, agency_id, resolve_now(now))
    except Exception as exc:
        logger.error("Failed to publish new lead %s to agency %s: %s", lead_id, agency_id, exc)
        return False
    return True


def notify_assignments(assignments: Iterable[Assignment], now: Optional[datetime] = None) -> int:
    """
    Publish an event for each assignment and stamp notified_at on success.

    Returns the number of assignments notified.
    """

    sent_at = resolve_now(now)
    sent = 0
    for assignment in assignments:
        if not publish_new_lead(assignment.lead_id, assignment.agency_id, sent_at):
            continue
        try:
            mark_notified(assignment, sent_at)
        except Exception as exc:
            logger.error("Failed to stamp notified_at on assignment %s: %s", assignment.assignment_id, exc)
            continue
        sent += 1
    return sent


__all__ = ["notify_assignments", "publish_new_lead"]
