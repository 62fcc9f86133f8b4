"""
Assignment lifecycle tracker.

The state machine itself lives on domain.assignment.Assignment; this module
persists its transitions. Every write is a compare-and-set on the status the
caller read, so two concurrent writers cannot both move one assignment.
The loser re-reads the row and gets AlreadyResolvedError when the winner
left it terminal.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from domain.assignment import Assignment, ResponseAction
from domain.errors import AlreadyResolvedError, InvalidTransitionError, NotFoundError
from domain.time import resolve_now
from repositories.distribution_repository import get_assignment, save_transition, stamp_notified

logger = logging.getLogger(__name__)


def _persist(previous: Assignment, updated: Assignment) -> Assignment:
    if updated == previous:
        return previous

    stored = save_transition(previous, updated)
    if stored is not None:
        return stored

    current = get_assignment(previous.distribution_id, previous.agency_id)
    if current is None:
        raise NotFoundError(f"Assignment not found: {previous.assignment_id}")
    if current.is_terminal:
        raise AlreadyResolvedError(current.assignment_id, current.status.value)
    raise InvalidTransitionError(
        f"Assignment {previous.assignment_id} changed concurrently "
        f"('{previous.status.value}' -> '{current.status.value}')"
    )


def mark_viewed(assignment: Assignment, now: Optional[datetime] = None) -> Assignment:
    """assigned -> viewed. A second view of a viewed assignment is a no-op."""

    return _persist(assignment, assignment.viewed(resolve_now(now)))


def mark_resolved(
    assignment: Assignment,
    action: ResponseAction,
    now: Optional[datetime] = None,
) -> Assignment:
    """
    Move an assignment into the terminal state named by `action`.

    Raises:
        AlreadyResolvedError: the assignment is (or concurrently became) terminal.
        InvalidTransitionError: e.g. purchasing a lead that was never viewed.
    """

    updated = _persist(assignment, assignment.resolved(action, resolve_now(now)))
    logger.info(
        "Assignment %s (agency %s) resolved as %s",
        updated.assignment_id,
        updated.agency_id,
        action.value,
    )
    return updated


def mark_notified(assignment: Assignment, now: Optional[datetime] = None) -> Assignment:
    """Stamp notified_at once; the lifecycle state is unchanged."""

    if assignment.notified_at is not None:
        return assignment
    updated = assignment.notified(resolve_now(now))
    stamp_notified(updated.assignment_id, updated.notified_at)
    return updated


__all__ = ["mark_notified", "mark_resolved", "mark_viewed"]
