"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository modules
call `get_client()` and never build a client themselves.

The client is created on first use so that modules import cleanly in tooling
and tests; `set_client()` installs an already configured client instead
(scripts that share a connection, test doubles).

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

# Load environment variables from the project's .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_client: Any = None


def get_client() -> Client:
    """
    Return the shared Supabase client, creating it from the environment on first use.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_KEY is not set.
    """

    global _client
    if _client is not None:
        return _client

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    _client = create_client(supabase_url, supabase_key)
    return _client


def set_client(client: Any) -> None:
    """Install `client` as the shared client (None resets to lazy creation)."""

    global _client
    _client = client


__all__ = ["get_client", "set_client"]
