#!/usr/bin/env python3
"""
Set hasBidirectional for every vehicle in the snapshot.

Resolution order: known-vehicle table, V2L/V2H/V2G keywords in the
charging capabilities, brand rules. Vehicles nothing applies to are
listed for manual research and keep their current value.

Usage:
    python scripts/backfill_bidirectional.py                  # Update data/vehicles-data.json
    python scripts/backfill_bidirectional.py --dry-run        # Report changes only
    python scripts/backfill_bidirectional.py --file path.json # Use another snapshot
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import run_snapshot_backfill  # noqa: E402


def main():
    """Main entry point."""
    run_snapshot_backfill("bidirectional", "Backfill bidirectional charging")


if __name__ == "__main__":
    main()
