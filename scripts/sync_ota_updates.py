#!/usr/bin/env python3
"""
Copy OTA update notes from the vehicle snapshot into the database.

Rows are matched on exact (name, model_trim, country). Snapshot entries
without an otaUpdates value are skipped.

Usage:
    python scripts/sync_ota_updates.py                   # data/vehicles-data.json
    python scripts/sync_ota_updates.py --file other.json # Another snapshot
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import resolve_snapshot_path, setup_logging  # noqa: E402

from app.db.postgres.session import async_session_maker, dispose_engine  # noqa: E402
from app.services.backfill_service import OtaSyncReport, load_snapshot, sync_ota_updates  # noqa: E402


async def sync(path: Path) -> OtaSyncReport:
    vehicles = load_snapshot(path)
    print(f"Found {len(vehicles)} vehicles in {path}")
    try:
        async with async_session_maker() as session:
            return await sync_ota_updates(session, vehicles)
    finally:
        await dispose_engine()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Sync OTA update notes from the snapshot")
    parser.add_argument("--file", type=str, default=None, help="Vehicle snapshot")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    report = asyncio.run(sync(resolve_snapshot_path(args.file)))

    print("\nUpdate complete:")
    print(f"  Updated:   {report.updated}")
    print(f"  Not found: {report.not_found}")
    print(f"  Skipped:   {report.skipped}")
    print(f"  Errors:    {report.errors}")
    sys.exit(1 if report.errors else 0)


if __name__ == "__main__":
    main()
