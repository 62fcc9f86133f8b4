#!/usr/bin/env python3
"""
Exclusivity Window Sweep

Expires every open assignment whose exclusivity window has closed. Expiry is
also applied lazily whenever a distribution is read, so this script is only
needed to keep reporting tables current (e.g. from cron).

Usage:
    python sweep_expired_windows.py
    python sweep_expired_windows.py --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from domain.assignment import OPEN_STATUSES
from domain.time import utc_now
from repositories.distribution_repository import list_open_assignments_due
from services.exclusivity_service import sweep_expired_windows


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Expire assignments whose exclusivity window has closed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report how many assignments would expire"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        now = utc_now()
        print(f"Sweeping exclusivity windows closed at or before {now.isoformat()}")

        if args.dry_run:
            due = list_open_assignments_due(now)
            print(f"{len(due)} open assignment(s) ({', '.join(s.value for s in OPEN_STATUSES)}) would expire")
            return 0

        expired = sweep_expired_windows(now)
        distributions = {a.distribution_id for a in expired}

        print()
        print("=" * 60)
        print("SWEEP SUMMARY")
        print("=" * 60)
        print(f"Assignments expired:     {len(expired)}")
        print(f"Distributions affected:  {len(distributions)}")
        print("=" * 60)
        return 0

    except KeyboardInterrupt:
        print("\n\nSweep interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
