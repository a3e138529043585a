"""
Services module for EVCompare.

This module contains the specs API client, the configurator options
scraper, vehicle ingestion, the comparison engine and the snapshot
backfills.
"""

from app.services.ev_api_service import (
    EVSpecRecord,
    EVSpecsService,
    close_ev_specs_service,
    get_ev_specs_service,
    transform_vehicle,
)
from app.services.options_scraper import (
    OptionPrice,
    OptionsScraperService,
    select_scraper,
)
from app.services.vehicle_transformer import to_vehicle_fields, upsert_vehicle
from app.services.ingestion_service import (
    CRON_ERROR,
    CRON_RUN,
    IngestionService,
    IngestionStats,
)
from app.services.comparison_service import (
    ComparisonSelection,
    best_value,
    best_values,
    build_chart_data,
    cost_per_full_charge,
    cost_per_km,
    export_csv,
    generate_insights,
    sort_vehicles,
)
from app.services.reference_data import (
    ReferenceTable,
    get_table,
    load_table,
    resolve_bidirectional,
)
from app.services.backfill_service import (
    BackfillReport,
    OtaSyncReport,
    export_snapshot,
    load_snapshot,
    run_backfill,
    sync_ota_updates,
    write_snapshot,
)

__all__ = [
    # Specs API
    "EVSpecRecord",
    "EVSpecsService",
    "close_ev_specs_service",
    "get_ev_specs_service",
    "transform_vehicle",
    # Options scraper
    "OptionPrice",
    "OptionsScraperService",
    "select_scraper",
    # Ingestion
    "to_vehicle_fields",
    "upsert_vehicle",
    "CRON_ERROR",
    "CRON_RUN",
    "IngestionService",
    "IngestionStats",
    # Comparison
    "ComparisonSelection",
    "best_value",
    "best_values",
    "build_chart_data",
    "cost_per_full_charge",
    "cost_per_km",
    "export_csv",
    "generate_insights",
    "sort_vehicles",
    # Reference data and backfills
    "ReferenceTable",
    "get_table",
    "load_table",
    "resolve_bidirectional",
    "BackfillReport",
    "OtaSyncReport",
    "export_snapshot",
    "load_snapshot",
    "run_backfill",
    "sync_ota_updates",
    "write_snapshot",
]
