#!/usr/bin/env python3
"""
Fill missing or non-positive battery capacities in the vehicle snapshot.

Capacities come from the versioned battery_capacities reference table,
matched on vehicle name and exact trim. A backup of the snapshot is
written before it is changed.

Usage:
    python scripts/backfill_battery_capacity.py                  # Update data/vehicles-data.json
    python scripts/backfill_battery_capacity.py --dry-run        # Report changes only
    python scripts/backfill_battery_capacity.py --file path.json # Use another snapshot
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import run_snapshot_backfill  # noqa: E402


def main():
    """Main entry point."""
    run_snapshot_backfill("battery_capacity", "Backfill battery capacity")


if __name__ == "__main__":
    main()
