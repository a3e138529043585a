#!/usr/bin/env python3
"""
Export the vehicles table to the JSON snapshot used by the backfill scripts.

Usage:
    python scripts/export_vehicles_snapshot.py                   # data/vehicles-data.json
    python scripts/export_vehicles_snapshot.py --output out.json # Another file
    python scripts/export_vehicles_snapshot.py --no-backup       # Overwrite without backup
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import DEFAULT_SNAPSHOT, setup_logging, validate_path_within_project  # noqa: E402

from app.db.postgres.session import async_session_maker, dispose_engine  # noqa: E402
from app.services.backfill_service import export_snapshot  # noqa: E402


async def export(path: Path, backup: bool) -> int:
    try:
        async with async_session_maker() as session:
            return await export_snapshot(session, path, backup=backup)
    finally:
        await dispose_engine()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Export vehicles to the JSON snapshot")
    parser.add_argument("--output", type=str, default=None, help="Output file")
    parser.add_argument("--no-backup", action="store_true", help="Do not back up an existing file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logging(args.verbose)

    path = Path(args.output) if args.output else DEFAULT_SNAPSHOT
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    if not validate_path_within_project(path):
        raise SystemExit(f"Refusing to write outside the project: {path}")

    count = asyncio.run(export(path, backup=not args.no_backup))
    print(f"Exported {count} vehicles to {path}")


if __name__ == "__main__":
    main()
