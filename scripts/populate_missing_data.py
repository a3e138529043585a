#!/usr/bin/env python3
"""
Populate missing battery capacity, torque, battery warranty and
technology features in the vehicle snapshot.

Prints the vehicles still missing each field afterwards (first 10).

Usage:
    python scripts/populate_missing_data.py                  # Update data/vehicles-data.json
    python scripts/populate_missing_data.py --dry-run        # Report changes only
    python scripts/populate_missing_data.py --file path.json # Use another snapshot
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import run_snapshot_backfill  # noqa: E402


def main():
    """Main entry point."""
    run_snapshot_backfill("populate_missing", "Populate missing data")


if __name__ == "__main__":
    main()
