#!/usr/bin/env python3
"""
Scrape manufacturer configurator option prices for stored vehicles.

Supported brands: Tesla, BYD, Hyundai and Kia. Pages are rendered with
headless Chromium (playwright) and scraped sequentially with a delay
between vehicles. Failures are logged and skipped.

Usage:
    python scripts/scrape_vehicle_options.py                 # All available vehicles
    python scripts/scrape_vehicle_options.py --country SG    # One market
    python scripts/scrape_vehicle_options.py --limit 5       # First 5 vehicles
    python scripts/scrape_vehicle_options.py --dry-run       # Scrape but do not save
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from tqdm import tqdm

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scripts.utils import setup_logging  # noqa: E402

from app.db.postgres.repositories import VehicleRepository  # noqa: E402
from app.db.postgres.session import async_session_maker, dispose_engine  # noqa: E402
from app.services.options_scraper import OptionsScraperService, select_scraper  # noqa: E402

logger = logging.getLogger(__name__)


async def scrape(args: argparse.Namespace) -> dict:
    scraper = OptionsScraperService()
    stats = {"vehicles": 0, "with_options": 0, "unsupported": 0, "saved": 0}

    async with async_session_maker() as session:
        repo = VehicleRepository(session)
        vehicles = await repo.list_vehicles(country=args.country, available=True)
        vehicles = [v for v in vehicles if select_scraper(v.name) is not None] if args.supported_only else vehicles
        if args.limit:
            vehicles = vehicles[: args.limit]
        stats["vehicles"] = len(vehicles)

        for index, vehicle in enumerate(tqdm(vehicles, desc="Scraping options")):
            if select_scraper(vehicle.name) is None:
                stats["unsupported"] += 1
                continue

            options = await scraper.scrape_options(vehicle.name, vehicle.model_trim, vehicle.country)
            if options:
                stats["with_options"] += 1
                if not args.dry_run:
                    vehicle.option_prices = [option.model_dump() for option in options]
                    await session.commit()
                    stats["saved"] += 1

            if index < len(vehicles) - 1 and args.delay > 0:
                await asyncio.sleep(args.delay)

    return stats


async def main_async(args: argparse.Namespace) -> dict:
    try:
        return await scrape(args)
    finally:
        await dispose_engine()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Scrape configurator option prices")
    parser.add_argument("--country", type=str, help="Market code (SG, MY, ...)")
    parser.add_argument("--limit", type=int, default=0, help="Maximum number of vehicles")
    parser.add_argument("--delay", type=float, default=3.0, help="Seconds between vehicles (default: 3)")
    parser.add_argument("--supported-only", action="store_true", help="Skip brands without a scraper")
    parser.add_argument("--dry-run", action="store_true", help="Scrape without saving")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    stats = asyncio.run(main_async(args))

    print("\n" + "=" * 60)
    print("OPTION SCRAPING SUMMARY")
    print("=" * 60)
    print(f"Vehicles:      {stats['vehicles']}")
    print(f"Unsupported:   {stats['unsupported']}")
    print(f"With options:  {stats['with_options']}")
    print(f"Saved:         {stats['saved']}")
    print("=" * 60)


if __name__ == "__main__":
    main()
