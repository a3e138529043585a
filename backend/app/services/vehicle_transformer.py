"""
Map normalized specs records onto the ``vehicles`` table.

Rows are matched on the composite natural key (name, model_trim, country).
Fields the provider does not know never overwrite stored values, so data
filled in by the backfill scripts survives later ingestion runs.
"""

from typing import Any, Optional, Sequence

from app.db.postgres.models import Vehicle, utc_now
from app.db.postgres.repositories import VehicleRepository
from app.services.ev_api_service import EVSpecRecord
from app.services.options_scraper import OptionPrice

# EVSpecRecord attribute -> Vehicle column
FIELD_MAP = {
    "range_km": "range_km",
    "range_wltp_km": "range_wltp_km",
    "range_epa_km": "range_epa_km",
    "efficiency_kwh_per_100km": "efficiency_kwh_per_100km",
    "power_rating_kw": "power_rating_kw",
    "battery_capacity_kwh": "battery_capacity_kwh",
    "charging_time_dc_0_to_80_min": "charging_time_dc_0_to_80_min",
    "acceleration_0_to_100_kmh": "acceleration_0_to_100_kmh",
}


def to_vehicle_fields(
    record: EVSpecRecord,
    option_prices: Optional[Sequence[OptionPrice]] = None,
) -> dict[str, Any]:
    """Known (non-null) column values for ``record``."""
    fields = {
        column: getattr(record, attr)
        for attr, column in FIELD_MAP.items()
        if getattr(record, attr) is not None
    }
    if option_prices:
        fields["option_prices"] = [option.model_dump() for option in option_prices]
    return fields


async def upsert_vehicle(
    repo: VehicleRepository,
    record: EVSpecRecord,
    country: str,
    option_prices: Optional[Sequence[OptionPrice]] = None,
) -> tuple[Vehicle, bool]:
    """
    Insert or update the row for ``record`` in ``country``.

    Every upsert refreshes ``updated_at`` and marks the row available, so a
    vehicle seen by this run is never swept as stale.

    Returns:
        The vehicle and whether it was created.
    """
    fields = to_vehicle_fields(record, option_prices)
    existing = await repo.find_by_natural_key(record.name, record.model_trim, country)

    if existing is None:
        vehicle = await repo.create({
            "name": record.name,
            "model_trim": record.model_trim,
            "country": country,
            "is_available": True,
            "option_prices": [],
            **fields,
        })
        return vehicle, True

    for column, value in fields.items():
        setattr(existing, column, value)
    existing.is_available = True
    existing.updated_at = utc_now()
    await repo.db.flush()
    return existing, False
