"""
Domain: Assignment lifecycle (state machine).

An Assignment binds one lead's distribution record to one agency and is unique
on (distribution_id, agency_id).

States:
- assigned (initial)
- viewed
- purchased | dismissed | expired (terminal, mutually exclusive, entered once)

Valid transitions:
- assigned -> viewed            first time the agency opens the lead
- assigned -> expired           window closed before the agency looked
- viewed   -> purchased | dismissed | expired

Invariants:
- No transition leaves a terminal state (AlreadyResolvedError).
- Timestamps never go backwards: assigned_at <= viewed_at <= responded_at.
- response_action is set iff the assignment is terminal, and equals the status.
- Re-viewing a viewed assignment is not a transition; callers count the view
  on the distribution record instead.
- expires_at mirrors the distribution window (None when the lead has no window).

Transitions return new instances; the original is left unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from .errors import AlreadyResolvedError, InvalidTransitionError
from .time import require_utc_timestamp


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    VIEWED = "viewed"
    PURCHASED = "purchased"
    DISMISSED = "dismissed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class ResponseAction(str, Enum):
    PURCHASED = "purchased"
    DISMISSED = "dismissed"
    EXPIRED = "expired"


TERMINAL_STATUSES: FrozenSet[AssignmentStatus] = frozenset(
    {AssignmentStatus.PURCHASED, AssignmentStatus.DISMISSED, AssignmentStatus.EXPIRED}
)

OPEN_STATUSES: FrozenSet[AssignmentStatus] = frozenset({AssignmentStatus.ASSIGNED, AssignmentStatus.VIEWED})

VALID_TRANSITIONS: Dict[AssignmentStatus, FrozenSet[AssignmentStatus]] = {
    AssignmentStatus.ASSIGNED: frozenset({AssignmentStatus.VIEWED, AssignmentStatus.EXPIRED}),
    AssignmentStatus.VIEWED: frozenset(
        {AssignmentStatus.PURCHASED, AssignmentStatus.DISMISSED, AssignmentStatus.EXPIRED}
    ),
    AssignmentStatus.PURCHASED: frozenset(),
    AssignmentStatus.DISMISSED: frozenset(),
    AssignmentStatus.EXPIRED: frozenset(),
}


def _check_not_before(name: str, value: datetime, earlier: Optional[datetime]) -> None:
    if earlier is not None and value < earlier:
        raise ValueError(f"{name} must not precede {earlier.isoformat()}")


@dataclass(frozen=True, slots=True)
class Assignment:
    assignment_id: UUID
    distribution_id: UUID
    lead_id: UUID
    agency_id: UUID
    assigned_at: datetime
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    notified_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    response_action: Optional[ResponseAction] = None
    expires_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("assigned_at", self.assigned_at)
        for name in ("notified_at", "viewed_at", "responded_at", "expires_at"):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)
        if self.viewed_at is not None:
            _check_not_before("viewed_at", self.viewed_at, self.assigned_at)
        if self.responded_at is not None:
            _check_not_before("responded_at", self.responded_at, self.viewed_at or self.assigned_at)

        if self.status.is_terminal:
            if self.response_action is None or self.response_action.value != self.status.value:
                raise ValueError("terminal assignments require a matching response_action")
            if self.responded_at is None:
                raise ValueError("terminal assignments require responded_at")
        elif self.response_action is not None or self.responded_at is not None:
            raise ValueError("open assignments cannot carry a response")
        if self.status is AssignmentStatus.VIEWED and self.viewed_at is None:
            raise ValueError("viewed assignments require viewed_at")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def is_overdue(self, now: datetime) -> bool:
        """True when the window has closed and the assignment is still open."""

        return not self.is_terminal and self.expires_at is not None and now >= self.expires_at

    def _require_transition(self, target: AssignmentStatus) -> None:
        if self.status.is_terminal:
            raise AlreadyResolvedError(self.assignment_id, self.status.value)
        if target not in VALID_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Assignment {self.assignment_id} cannot go from '{self.status.value}' to '{target.value}'"
            )

    def viewed(self, at: datetime) -> "Assignment":
        """
        Mark the assignment as viewed.

        Idempotent: an already viewed assignment is returned unchanged.
        """

        require_utc_timestamp("viewed_at", at)
        if self.status is AssignmentStatus.VIEWED:
            return self
        self._require_transition(AssignmentStatus.VIEWED)
        _check_not_before("viewed_at", at, self.assigned_at)
        return replace(self, status=AssignmentStatus.VIEWED, viewed_at=at)

    def resolved(self, action: ResponseAction, at: datetime) -> "Assignment":
        """Enter the terminal state named by `action`."""

        require_utc_timestamp("responded_at", at)
        target = AssignmentStatus(action.value)
        self._require_transition(target)
        _check_not_before("responded_at", at, self.viewed_at or self.assigned_at)
        return replace(self, status=target, responded_at=at, response_action=action)

    def expired(self, at: datetime) -> "Assignment":
        return self.resolved(ResponseAction.EXPIRED, at)

    def notified(self, at: datetime) -> "Assignment":
        """Stamp notified_at; the lifecycle state is unchanged."""

        require_utc_timestamp("notified_at", at)
        _check_not_before("notified_at", at, self.assigned_at)
        return replace(self, notified_at=at)
