"""
Vehicle ingestion run: fetch, upsert, sweep, audit.

The run is strictly sequential, country by country and vehicle by vehicle.
Each vehicle is committed on its own, so a run cut short leaves the rows
it already wrote in place and the next run picks up the rest.
"""

import time
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import PerformanceLogger, get_logger, log_database_operation, log_ingestion_run
from app.core.metrics import (
    set_vehicle_count,
    track_ingested_vehicle,
    track_ingestion_run,
    track_stale_vehicles,
)
from app.db.postgres.repositories import AuditLogRepository, VehicleRepository
from app.services.ev_api_service import EVSpecRecord, EVSpecsService
from app.services.options_scraper import OptionPrice, OptionsScraperService
from app.services.vehicle_transformer import upsert_vehicle

logger = get_logger(__name__)

CRON_RUN = "CRON_RUN"
CRON_ERROR = "CRON_ERROR"


@dataclass
class IngestionStats:
    processed: int = 0
    created: int = 0
    updated: int = 0
    outdated_marked: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0
    timestamp: str = ""

    def to_audit_changes(self) -> dict[str, Any]:
        changes: dict[str, Any] = {
            "timestamp": self.timestamp,
            "vehiclesProcessed": self.processed,
            "vehiclesCreated": self.created,
            "vehiclesUpdated": self.updated,
            "outdatedMarked": self.outdated_marked,
        }
        if self.errors:
            changes["errors"] = self.errors
        changes["durationMs"] = self.duration_ms
        return changes


class IngestionService:
    """
    Runs one full ingest-and-sweep pass against the database.

    Args:
        db: Session used for every write of the run
        fetcher: Specs client (a fresh EVSpecsService by default)
        scraper: Options scraper, used only when scraping is enabled
        countries: Markets to populate (settings.INGESTION_COUNTRIES)
        scrape_options: Override of settings.SCRAPE_OPTIONS
        stale_after_days: Override of settings.STALE_AFTER_DAYS
    """

    def __init__(
        self,
        db: AsyncSession,
        fetcher: Optional[EVSpecsService] = None,
        scraper: Optional[OptionsScraperService] = None,
        countries: Optional[list[str]] = None,
        scrape_options: Optional[bool] = None,
        stale_after_days: Optional[int] = None,
    ):
        self.db = db
        self.vehicles = VehicleRepository(db)
        self.audit = AuditLogRepository(db)
        self._fetcher = fetcher
        self._scraper = scraper
        self.countries = countries or settings.ingestion_countries
        self.scrape_options = settings.SCRAPE_OPTIONS if scrape_options is None else scrape_options
        self.stale_after_days = settings.STALE_AFTER_DAYS if stale_after_days is None else stale_after_days

    async def _fetch(self, stats: IngestionStats) -> list[EVSpecRecord]:
        fetcher = self._fetcher or EVSpecsService()
        try:
            return await fetcher.fetch_all()
        except Exception as e:
            logger.error(f"Vehicle specs fetch failed: {e}", exc_info=True)
            stats.errors.append(f"API fetch failed: {e}")
            return []
        finally:
            if self._fetcher is None:
                await fetcher.close()

    async def _options_for(self, record: EVSpecRecord, country: str) -> list[OptionPrice]:
        if not self.scrape_options:
            return []
        scraper = self._scraper or OptionsScraperService()
        try:
            return await scraper.scrape_options(record.name, record.model_trim, country)
        except Exception as e:
            logger.warning(f"Option scraping failed for {record.name}: {e}")
            return []

    async def _ingest_one(self, record: EVSpecRecord, country: str, stats: IngestionStats) -> None:
        options = await self._options_for(record, country)
        try:
            _, created = await upsert_vehicle(self.vehicles, record, country, options)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                f"Error processing {record.name}: {e}",
                extra={"vehicle": record.name, "model_trim": record.model_trim, "country": country},
            )
            stats.errors.append(f"Error processing {record.name}: {e}")
            track_ingested_vehicle(country, "error")
            return

        stats.processed += 1
        if created:
            stats.created += 1
        else:
            stats.updated += 1
        track_ingested_vehicle(country, "created" if created else "updated")

    async def sweep_stale(self, now: Optional[datetime] = None) -> int:
        """Mark available vehicles not updated within the window as unavailable."""
        cutoff = (now or datetime.now(UTC)) - timedelta(days=self.stale_after_days)
        start = time.time()
        marked = await self.vehicles.mark_stale(cutoff)
        await self.db.commit()

        log_database_operation("mark_stale", "vehicles", (time.time() - start) * 1000, rows_affected=marked)
        track_stale_vehicles(marked)
        return marked

    async def run(self) -> IngestionStats:
        """
        Ingest every fetched vehicle into every configured country, sweep
        stale rows and write a CRON_RUN audit entry.

        Per-vehicle failures are collected in ``stats.errors``; anything
        else propagates to the caller.
        """
        start = time.time()
        stats = IngestionStats(timestamp=datetime.now(UTC).isoformat())

        with PerformanceLogger("vehicle_ingestion", logger_name="ingestion", warn_threshold_ms=600_000):
            records = await self._fetch(stats)
            logger.info(f"Ingesting {len(records)} vehicles into {', '.join(self.countries)}")

            for country in self.countries:
                for record in records:
                    await self._ingest_one(record, country, stats)

            stats.outdated_marked = await self.sweep_stale()

        stats.duration_ms = int((time.time() - start) * 1000)
        await self.audit.record(CRON_RUN, stats.to_audit_changes())
        await self.db.commit()

        set_vehicle_count(await self.vehicles.count())
        track_ingestion_run(True, stats.duration_ms / 1000)
        log_ingestion_run(stats.to_audit_changes())
        return stats

    async def record_failure(self, exc: BaseException) -> str:
        """
        Write a CRON_ERROR audit entry for a failed run.

        Returns:
            The timestamp stored with the entry.
        """
        timestamp = datetime.now(UTC).isoformat()
        await self.db.rollback()
        await self.audit.record(CRON_ERROR, {
            "error": str(exc),
            "timestamp": timestamp,
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        })
        await self.db.commit()

        track_ingestion_run(False, 0)
        log_ingestion_run({"error": str(exc), "timestamp": timestamp}, success=False)
        return timestamp
