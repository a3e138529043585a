#!/usr/bin/env python3
"""
Strip price annotations such as "(RM 5,000 option)" from technology
features in the vehicle snapshot and normalize the comma separated list.

Usage:
    python scripts/clean_feature_prices.py                  # Update data/vehicles-data.json
    python scripts/clean_feature_prices.py --dry-run        # Report changes only
    python scripts/clean_feature_prices.py --file path.json # Use another snapshot
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import run_snapshot_backfill  # noqa: E402


def main():
    """Main entry point."""
    run_snapshot_backfill("clean_feature_prices", "Clean feature prices")


if __name__ == "__main__":
    main()
