#!/usr/bin/env python3
"""
Replace efficiency figures in the vehicle snapshot with WLTP combined
consumption (kWh/100km) where the WLTP table knows the vehicle.

Usage:
    python scripts/update_wltp_efficiency.py                  # Update data/vehicles-data.json
    python scripts/update_wltp_efficiency.py --dry-run        # Report changes only
    python scripts/update_wltp_efficiency.py --file path.json # Use another snapshot
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import run_snapshot_backfill  # noqa: E402


def main():
    """Main entry point."""
    run_snapshot_backfill("wltp_efficiency", "Update WLTP efficiency")


if __name__ == "__main__":
    main()
