"""
Show round-robin cursors and per-agency assignment totals.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.lead import LeadStatus
from repositories.lead_repository import list_leads_by_status
from services.distribution_stats import get_distribution_stats


def inspect_rotation(scope=None):
    """Print rotation cursors, assignment counts and leads still waiting for an agency."""

    stats = get_distribution_stats(scope)

    print("=" * 50)
    print("ROTATION CURSORS")
    print("=" * 50)
    if not stats.cursors:
        print("No rotation has run yet")
    for cursor in stats.cursors:
        updated = cursor.updated_at.isoformat() if cursor.updated_at else "never"
        print(f"{cursor.scope:<20} position={cursor.position:<5} updated={updated}")

    print("\nAssignments per agency:")
    print("-" * 50)
    for agency in stats.agencies:
        last = agency.last_assigned_at.isoformat() if agency.last_assigned_at else "-"
        print(f"{agency.agency_id}  {agency.assignment_count:>6}  last={last}")
    print("-" * 50)
    print(f"Total assignments: {stats.total_assignments}")

    unassigned = list_leads_by_status(LeadStatus.NEW, limit=1000)
    print(f"Leads without an agency: {len(unassigned)}")


if __name__ == "__main__":
    inspect_rotation(sys.argv[1] if len(sys.argv) > 1 else None)
