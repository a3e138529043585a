"""
Manual data backfills over the vehicle JSON snapshot.

The snapshot (``data/vehicles-data.json`` by default) is a list of
camelCase vehicle objects, as written by :func:`export_snapshot`. The
backfill functions mutate that list in place and return a
:class:`BackfillReport`; callers persist it with
:func:`write_snapshot`, which copies the previous file aside first.

Two operations talk to the database directly: exporting the table to a
snapshot and copying OTA update notes from a snapshot back onto rows.
"""

import json
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.vehicle import VehicleSnapshot
from app.core.config import settings
from app.core.exceptions import ValidationException
from app.core.logging import get_logger
from app.db.postgres.repositories import VehicleRepository
from app.services.reference_data import (
    BATTERY_CAPACITIES,
    BATTERY_WARRANTIES,
    BIDIRECTIONAL_CHARGING,
    TECHNOLOGY_FEATURES,
    TORQUE,
    WLTP_EFFICIENCY,
    ReferenceTable,
    get_table,
    resolve_bidirectional,
    resolve_warranty,
    resolve_wltp_efficiency,
)

logger = get_logger(__name__)

# Missing-field lists are cut to this many names in reports
REPORT_SAMPLE_SIZE = 10

_CURRENCY_PRICE_RE = re.compile(
    r"\s*\([^)]*?(?:RM|SGD|MYR|USD|EUR|GBP|IDR|PHP|THB|VND)\s*\d+[,\d\s]*\s*(?:option)?[^)]*?\)\s*",
    re.IGNORECASE,
)
_OPTION_PRICE_RE = re.compile(r"\s*\([^)]*?\d+[,\d\s]+\s*option[^)]*?\)\s*", re.IGNORECASE)


@dataclass
class BackfillReport:
    """Outcome of one backfill pass over a snapshot."""

    operation: str
    total: int = 0
    updated: int = 0
    changes: list[str] = field(default_factory=list)
    missing: dict[str, list[str]] = field(default_factory=dict)

    def note_missing(self, field_name: str, label: str) -> None:
        self.missing.setdefault(field_name, []).append(label)

    def summary(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "total": self.total,
            "updated": self.updated,
            "missing": {k: len(v) for k, v in self.missing.items()},
        }


@dataclass
class OtaSyncReport:
    updated: int = 0
    not_found: int = 0
    skipped: int = 0
    errors: int = 0


def vehicle_label(vehicle: dict[str, Any]) -> str:
    trim = vehicle.get("modelTrim")
    label = f"{vehicle.get('name', '')} {trim}" if trim else str(vehicle.get("name", ""))
    country = vehicle.get("country")
    return f"{label} ({country})" if country else label


def _is_missing_number(value: Any) -> bool:
    return value is None or not isinstance(value, (int, float)) or value <= 0


# =============================================================================
# Snapshot I/O
# =============================================================================


def snapshot_path(path: Optional[str | Path] = None) -> Path:
    return Path(path or settings.VEHICLE_SNAPSHOT_PATH)


def load_snapshot(path: Optional[str | Path] = None) -> list[dict[str, Any]]:
    """Read the vehicle snapshot; it must hold a JSON list."""
    path = snapshot_path(path)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValidationException(f"Snapshot {path} does not contain a list of vehicles")
    logger.info(f"Loaded {len(data)} vehicles from {path}")
    return data


def backup_path_for(path: Path, now: Optional[datetime] = None) -> Path:
    """``vehicles-data.json`` -> ``vehicles-data.backup-YYYYMMDD_HHMMSS.json``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return path.with_name(f"{path.stem}.backup-{stamp}{path.suffix}")


def write_snapshot(
    vehicles: list[dict[str, Any]],
    path: Optional[str | Path] = None,
    backup: bool = True,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """
    Write ``vehicles`` to the snapshot file.

    When ``backup`` is set and the file exists, it is copied aside first.

    Returns:
        Path of the backup, or None when none was made.
    """
    path = snapshot_path(path)
    backup_file = None
    if backup and path.exists():
        backup_file = backup_path_for(path, now)
        shutil.copy2(path, backup_file)
        logger.info(f"Backup created: {backup_file}")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(vehicles, f, indent=2, ensure_ascii=False)
        f.write("\n")
    logger.info(f"Wrote {len(vehicles)} vehicles to {path}")
    return backup_file


# =============================================================================
# Snapshot backfills
# =============================================================================


def backfill_battery_capacities(
    vehicles: list[dict[str, Any]],
    table: Optional[ReferenceTable] = None,
) -> BackfillReport:
    """Fill missing or non-positive ``batteryCapacityKwh`` from the capacity table."""
    table = table or get_table(BATTERY_CAPACITIES)
    report = BackfillReport("battery_capacity", total=len(vehicles))

    for vehicle in vehicles:
        if not _is_missing_number(vehicle.get("batteryCapacityKwh")):
            continue
        capacity = table.resolve_trim(vehicle.get("name"), vehicle.get("modelTrim"))
        if capacity is None:
            report.note_missing("batteryCapacityKwh", vehicle_label(vehicle))
            continue
        vehicle["batteryCapacityKwh"] = float(capacity)
        report.updated += 1
        report.changes.append(f"{vehicle_label(vehicle)}: {capacity} kWh")

    return report


def backfill_bidirectional(
    vehicles: list[dict[str, Any]],
    table: Optional[ReferenceTable] = None,
) -> BackfillReport:
    """
    Set ``hasBidirectional`` from the known-vehicle table, charging
    capability keywords and brand rules.

    Vehicles nothing applies to keep their current value and are listed
    in ``report.missing`` for manual research.
    """
    table = table or get_table(BIDIRECTIONAL_CHARGING)
    report = BackfillReport("bidirectional", total=len(vehicles))

    for vehicle in vehicles:
        value = resolve_bidirectional(vehicle.get("name"), vehicle.get("chargingCapabilities"), table)
        if value is None:
            report.note_missing("hasBidirectional", vehicle_label(vehicle))
            continue
        if vehicle.get("hasBidirectional") != value:
            report.changes.append(f"{vehicle_label(vehicle)}: {value}")
        vehicle["hasBidirectional"] = value
        report.updated += 1

    return report


def populate_missing_data(
    vehicles: list[dict[str, Any]],
    capacities: Optional[ReferenceTable] = None,
    torque: Optional[ReferenceTable] = None,
    warranties: Optional[ReferenceTable] = None,
    features: Optional[ReferenceTable] = None,
) -> BackfillReport:
    """
    Fill battery capacity, torque, battery warranty and technology features.

    ``report.updated`` counts fields, not vehicles. ``report.missing``
    lists the vehicles still lacking each field afterwards.
    """
    capacities = capacities or get_table(BATTERY_CAPACITIES)
    torque = torque or get_table(TORQUE)
    warranties = warranties or get_table(BATTERY_WARRANTIES)
    features = features or get_table(TECHNOLOGY_FEATURES)
    report = BackfillReport("populate_missing", total=len(vehicles))

    for vehicle in vehicles:
        name, trim = vehicle.get("name"), vehicle.get("modelTrim")
        label = vehicle_label(vehicle)

        if _is_missing_number(vehicle.get("batteryCapacityKwh")):
            value = capacities.resolve_trim(name, trim)
            if value is not None:
                vehicle["batteryCapacityKwh"] = float(value)
                report.updated += 1
                report.changes.append(f"{label}: batteryCapacityKwh={value}")

        if _is_missing_number(vehicle.get("torqueNm")):
            value = torque.resolve_trim(name, trim)
            if value is not None:
                vehicle["torqueNm"] = float(value)
                report.updated += 1
                report.changes.append(f"{label}: torqueNm={value}")

        if not vehicle.get("batteryWarranty"):
            value = resolve_warranty(name, warranties)
            if value:
                vehicle["batteryWarranty"] = value
                report.updated += 1
                report.changes.append(f"{label}: batteryWarranty={value}")

        if not vehicle.get("technologyFeatures"):
            value = features.resolve(name)
            if value:
                vehicle["technologyFeatures"] = value
                report.updated += 1
                report.changes.append(f"{label}: technologyFeatures")

        if _is_missing_number(vehicle.get("batteryCapacityKwh")):
            report.note_missing("batteryCapacityKwh", label)
        if _is_missing_number(vehicle.get("torqueNm")):
            report.note_missing("torqueNm", label)
        if not vehicle.get("batteryWarranty"):
            report.note_missing("batteryWarranty", label)
        if not vehicle.get("technologyFeatures"):
            report.note_missing("technologyFeatures", label)

    return report


def update_wltp_efficiency(
    vehicles: list[dict[str, Any]],
    table: Optional[ReferenceTable] = None,
) -> BackfillReport:
    """
    Overwrite ``efficiencyKwhPer100km`` with WLTP figures where known.

    Vehicles without a WLTP figure keep their value; those with no value
    at all are reported.
    """
    table = table or get_table(WLTP_EFFICIENCY)
    report = BackfillReport("wltp_efficiency", total=len(vehicles))

    for vehicle in vehicles:
        value = resolve_wltp_efficiency(vehicle.get("name"), vehicle.get("modelTrim"), table)
        if value is None:
            if _is_missing_number(vehicle.get("efficiencyKwhPer100km")):
                report.note_missing("efficiencyKwhPer100km", vehicle_label(vehicle))
            continue
        if vehicle.get("efficiencyKwhPer100km") != value:
            report.changes.append(f"{vehicle_label(vehicle)}: {vehicle.get('efficiencyKwhPer100km')} -> {value}")
        vehicle["efficiencyKwhPer100km"] = value
        report.updated += 1

    return report


def clean_feature_string(features: Optional[str]) -> Optional[str]:
    """
    Strip parenthesised price notes from a feature list.

    ``"HUD (RM 5,000 option), Sunroof"`` -> ``"HUD, Sunroof"``.
    """
    if not features:
        return features
    cleaned = _CURRENCY_PRICE_RE.sub(" ", features)
    cleaned = _OPTION_PRICE_RE.sub(" ", cleaned)
    parts = [part.strip() for part in cleaned.split(",")]
    return ", ".join(part for part in parts if part)


def _normalize_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value.strip())


def clean_feature_prices(vehicles: list[dict[str, Any]]) -> BackfillReport:
    """Apply :func:`clean_feature_string` to every ``technologyFeatures``."""
    report = BackfillReport("clean_feature_prices", total=len(vehicles))

    for vehicle in vehicles:
        original = vehicle.get("technologyFeatures")
        if not original:
            continue
        cleaned = clean_feature_string(original) or ""
        if _normalize_whitespace(original) == _normalize_whitespace(cleaned):
            continue
        vehicle["technologyFeatures"] = cleaned
        report.updated += 1
        report.changes.append(f"{vehicle_label(vehicle)}: '{original}' -> '{cleaned}'")

    return report


BACKFILLS = {
    "battery_capacity": backfill_battery_capacities,
    "bidirectional": backfill_bidirectional,
    "populate_missing": populate_missing_data,
    "wltp_efficiency": update_wltp_efficiency,
    "clean_feature_prices": clean_feature_prices,
}


def run_backfill(
    operation: str,
    path: Optional[str | Path] = None,
    dry_run: bool = False,
) -> BackfillReport:
    """
    Load the snapshot, apply one backfill and write it back.

    Nothing is written on a dry run or when the pass changed nothing.
    """
    if operation not in BACKFILLS:
        raise ValidationException(f"Unknown backfill operation: {operation}")

    vehicles = load_snapshot(path)
    report = BACKFILLS[operation](vehicles)
    logger.info(f"Backfill {operation} finished", extra=report.summary())

    if dry_run:
        logger.info("Dry run, snapshot not written")
    elif report.updated:
        write_snapshot(vehicles, path)
    return report


# =============================================================================
# Database operations
# =============================================================================


async def export_snapshot(db: AsyncSession, path: Optional[str | Path] = None, backup: bool = True) -> int:
    """Dump the whole vehicle table to the JSON snapshot. Returns the row count."""
    rows = await VehicleRepository(db).list_vehicles()
    vehicles = [
        VehicleSnapshot.model_validate(row).model_dump(mode="json", by_alias=True)
        for row in rows
    ]
    write_snapshot(vehicles, path, backup=backup)
    return len(vehicles)


async def sync_ota_updates(db: AsyncSession, vehicles: list[dict[str, Any]]) -> OtaSyncReport:
    """
    Copy ``otaUpdates`` from snapshot entries onto rows with the same
    (name, model_trim, country). Each row is committed on its own.
    """
    repo = VehicleRepository(db)
    report = OtaSyncReport()

    for vehicle in vehicles:
        label = vehicle_label(vehicle)
        if not vehicle.get("otaUpdates"):
            logger.warning(f"{label} has no otaUpdates value")
            report.skipped += 1
            continue
        try:
            found = await repo.update_by_natural_key(
                vehicle["name"],
                vehicle.get("modelTrim") or None,
                vehicle["country"],
                {"ota_updates": vehicle["otaUpdates"]},
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error updating {label}: {e}")
            report.errors += 1
            continue

        if found:
            report.updated += 1
            logger.info(f"Updated {label}: {vehicle['otaUpdates']}")
        else:
            report.not_found += 1
            logger.warning(f"Not found: {label}")

    return report
