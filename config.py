"""
Engine configuration.

Values come from environment variables (a `.env` file in the project root is
loaded first). Every setting has a default so the engine runs without one.

Environment variables:
- DUPLICATE_WINDOW_HOURS: trailing window for duplicate detection (default 24)
- EXCLUSIVE_WINDOW_HOURS: length of a mobile exclusivity window (default 24)
- MAX_EXCLUSIVE_AGENCIES: agencies sharing one exclusive lead (default 3)
- DEFAULT_DISTRIBUTION_MODE: round_robin or exclusive (default round_robin)
- LOG_LEVEL: root log level for the API process (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from domain.portal import DistributionMode

env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}")
    if value < minimum:
        raise RuntimeError(f"Environment variable {name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class EngineSettings:
    duplicate_window: timedelta = timedelta(hours=24)
    exclusive_window: timedelta = timedelta(hours=24)
    max_exclusive_agencies: int = 3
    default_distribution_mode: DistributionMode = DistributionMode.ROUND_ROBIN
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        mode_raw = os.getenv("DEFAULT_DISTRIBUTION_MODE", DistributionMode.ROUND_ROBIN.value)
        try:
            mode = DistributionMode(mode_raw.strip().lower())
        except ValueError:
            raise RuntimeError(
                f"DEFAULT_DISTRIBUTION_MODE must be one of "
                f"{[m.value for m in DistributionMode]}, got {mode_raw!r}"
            )

        return cls(
            duplicate_window=timedelta(hours=_int_env("DUPLICATE_WINDOW_HOURS", 24, minimum=1)),
            exclusive_window=timedelta(hours=_int_env("EXCLUSIVE_WINDOW_HOURS", 24, minimum=1)),
            max_exclusive_agencies=_int_env("MAX_EXCLUSIVE_AGENCIES", 3, minimum=1),
            default_distribution_mode=mode,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return EngineSettings.from_env()


__all__ = ["EngineSettings", "get_settings"]
