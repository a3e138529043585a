#!/usr/bin/env python3
"""
Run one vehicle ingestion pass from the command line.

Does the same work as GET /api/v1/cron/update-vehicles: fetch specs from
API Ninjas, upsert every vehicle for every configured market, mark stale
rows unavailable and write a CRON_RUN audit entry.

Usage:
    python scripts/run_vehicle_ingestion.py                    # SG and MY (INGESTION_COUNTRIES)
    python scripts/run_vehicle_ingestion.py --countries SG     # One market
    python scripts/run_vehicle_ingestion.py --scrape-options   # Also scrape configurator options
    python scripts/run_vehicle_ingestion.py --sweep-only       # Only mark stale vehicles
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import setup_logging  # noqa: E402

from app.db.postgres.session import async_session_maker, dispose_engine  # noqa: E402
from app.services.ingestion_service import IngestionService  # noqa: E402

logger = logging.getLogger(__name__)


async def run(args: argparse.Namespace) -> int:
    async with async_session_maker() as session:
        service = IngestionService(
            session,
            countries=[c.strip().upper() for c in args.countries.split(",")] if args.countries else None,
            scrape_options=True if args.scrape_options else None,
            stale_after_days=args.stale_after_days,
        )

        if args.sweep_only:
            marked = await service.sweep_stale()
            print(f"Marked {marked} vehicles unavailable")
            return 0

        try:
            stats = await service.run()
        except Exception as e:
            logger.error(f"Ingestion failed: {e}", exc_info=True)
            await service.record_failure(e)
            return 1

    print("\n" + "=" * 60)
    print("INGESTION SUMMARY")
    print("=" * 60)
    print(f"Processed:       {stats.processed}")
    print(f"Created:         {stats.created}")
    print(f"Updated:         {stats.updated}")
    print(f"Marked outdated: {stats.outdated_marked}")
    print(f"Errors:          {len(stats.errors)}")
    print(f"Duration:        {stats.duration_ms} ms")
    for error in stats.errors[:10]:
        print(f"  - {error}")
    print("=" * 60)
    return 0


async def main_async(args: argparse.Namespace) -> int:
    try:
        return await run(args)
    finally:
        await dispose_engine()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run one EVCompare vehicle ingestion pass")
    parser.add_argument("--countries", type=str, help="Comma separated markets (default: INGESTION_COUNTRIES)")
    parser.add_argument("--scrape-options", action="store_true", help="Scrape configurator option prices")
    parser.add_argument("--stale-after-days", type=int, default=None, help="Staleness window in days")
    parser.add_argument("--sweep-only", action="store_true", help="Only mark stale vehicles unavailable")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    sys.exit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()
