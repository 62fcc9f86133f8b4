"""
Domain: Audit trail entries.

The audit log is append-only. Every ingested lead produces exactly one entry
binding the lead snapshot, the agency it went to (if any) and the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .time import require_utc_timestamp


class AuditOutcome(str, Enum):
    ASSIGNED_TO_AGENCY = "assigned_to_agency"
    DISTRIBUTED_EXCLUSIVE = "distributed_exclusive"
    CREATED_WITHOUT_AGENCY = "created_without_agency"
    ASSIGNMENT_FAILED = "assignment_failed"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    lead_id: UUID
    lead_snapshot: Mapping[str, Any]
    outcome: AuditOutcome
    timestamp: datetime
    agency_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)
