"""
Shared row helpers for the Supabase repositories.

Timestamp (de)serialization, UUID parsing and query execution with uniform
error handling. No business rules belong here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

import httpx
from postgrest.exceptions import APIError

from domain.errors import PersistenceError
from domain.time import require_utc_timestamp

# PostgreSQL SQLSTATE for unique_violation.
UNIQUE_VIOLATION = "23505"

# PostgREST default max-rows.
PAGE_SIZE = 1000


class UniqueViolationError(PersistenceError):
    """Raised when an insert collides with a unique constraint."""


def to_iso_utc(dt: datetime, *, name: str = "timestamp") -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def optional_iso_utc(dt: Optional[datetime], *, name: str = "timestamp") -> Optional[str]:
    return to_iso_utc(dt, name=name) if dt is not None else None


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    # Naive timestamps from the backend are interpreted as UTC.
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def parse_optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def execute(query: Any, action: str) -> List[Dict[str, Any]]:
    """
    Execute a PostgREST query and return its rows.

    Raises:
        UniqueViolationError: the write collided with a unique constraint.
        PersistenceError: any other Supabase error or transport failure.
    """

    try:
        response = query.execute()
    except APIError as exc:
        if getattr(exc, "code", None) == UNIQUE_VIOLATION:
            raise UniqueViolationError(f"Failed to {action}: {exc.message}") from exc
        raise PersistenceError(f"Failed to {action}: {exc.message or exc}") from exc
    except httpx.HTTPError as exc:
        raise PersistenceError(f"Failed to {action}: {exc}") from exc

    error = getattr(response, "error", None)
    if error:
        raise PersistenceError(f"Failed to {action}: {error}")

    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, list):
        return data
    # Single-object and scalar RPC results are wrapped as one row.
    return [data]


def execute_paged(build_query: Callable[[], Any], action: str, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
    """
    Fetch every row of a select by walking `.range()` pages.

    PostgREST caps a single response at its max-rows setting, so a page can
    come back shorter than `page_size` while more rows remain. Paging stops on
    the first empty page. `build_query` must return a freshly built, stably
    ordered query on each call.
    """

    all_rows: List[Dict[str, Any]] = []
    offset = 0
    while True:
        page = execute(build_query().range(offset, offset + page_size - 1), action)
        if not page:
            return all_rows
        all_rows.extend(page)
        offset += len(page)


__all__ = [
    "UNIQUE_VIOLATION",
    "PAGE_SIZE",
    "UniqueViolationError",
    "execute",
    "execute_paged",
    "optional_iso_utc",
    "parse_optional_datetime",
    "parse_optional_uuid",
    "parse_utc_datetime",
    "to_iso_utc",
]
