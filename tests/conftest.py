"""
Pytest configuration.

This file adds the project root to the Python path so that tests can import
domain, repositories and services, and provides an in-memory Supabase
client for tests that touch persistence.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from config import get_settings  # noqa: E402
from fake_supabase import FakeSupabase  # noqa: E402
from repositories.client import set_client  # noqa: E402


@pytest.fixture
def fake_db():
    """Install a fresh in-memory database for the duration of one test."""

    db = FakeSupabase()
    set_client(db)
    get_settings.cache_clear()
    yield db
    set_client(None)
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 6, 2, 15, 0, 0, tzinfo=timezone.utc)
