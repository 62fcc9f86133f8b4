"""
Domain: error taxonomy for the lead distribution engine.

- Validation and duplicate errors are raised before a lead is persisted.
- Distribution/transition errors signal caller misuse and are never swallowed.
- PersistenceError wraps storage failures; callers may retry the whole request.

"No eligible agency" is not an error: it is a valid ingestion outcome.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID


class DistributionEngineError(Exception):
    """Base class for every error raised by the distribution engine."""


class ValidationError(DistributionEngineError):
    """Raised when an incoming lead is missing required fields."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Lead validation failed: " + "; ".join(self.errors))


class DuplicateLeadError(DistributionEngineError):
    """Raised when a lead matches an existing lead inside the duplicate window."""

    def __init__(self, reason: str, duplicate_lead_id: Optional[UUID] = None):
        self.reason = reason
        self.duplicate_lead_id = duplicate_lead_id
        super().__init__(f"Duplicate lead detected: {reason}")


class DuplicateDistributionError(DistributionEngineError):
    """Raised when a distribution record already exists for a lead."""

    def __init__(self, lead_id: UUID):
        self.lead_id = lead_id
        super().__init__(f"Lead {lead_id} already has a distribution record")


class InvalidTransitionError(DistributionEngineError):
    """Raised when a lifecycle transition is not allowed from the current state."""


class AlreadyResolvedError(InvalidTransitionError):
    """Raised when an assignment in a terminal state is resolved again."""

    def __init__(self, assignment_id: UUID, status: str):
        self.assignment_id = assignment_id
        self.status = status
        super().__init__(f"Assignment {assignment_id} is already resolved ({status})")


class WindowExpiredError(DistributionEngineError):
    """Raised when an agency acts on an exclusivity window that has closed."""

    def __init__(self, distribution_id: UUID):
        self.distribution_id = distribution_id
        super().__init__(f"Exclusivity window for distribution {distribution_id} has expired")


class DuplicateTerritoryError(DistributionEngineError):
    """Raised when an agency already holds an active territory with the same type and value."""


class NotFoundError(DistributionEngineError):
    """Raised when a referenced record does not exist."""


class PersistenceError(DistributionEngineError):
    """
    Raised when the persistence collaborator fails.

    Retryable: the engine performs no internal retries.
    """


__all__ = [
    "AlreadyResolvedError",
    "DistributionEngineError",
    "DuplicateDistributionError",
    "DuplicateLeadError",
    "DuplicateTerritoryError",
    "InvalidTransitionError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "WindowExpiredError",
]
