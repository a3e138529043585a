"""
Tests for the snapshot backfills and the snapshot database operations.
"""

import json
from datetime import datetime

import pytest

from app.core.exceptions import ValidationException
from app.db.postgres.models import Vehicle
from app.db.postgres.repositories import VehicleRepository
from app.services.backfill_service import (
    backfill_battery_capacities,
    backfill_bidirectional,
    backup_path_for,
    clean_feature_prices,
    clean_feature_string,
    export_snapshot,
    load_snapshot,
    populate_missing_data,
    run_backfill,
    sync_ota_updates,
    update_wltp_efficiency,
    vehicle_label,
    write_snapshot,
)
from app.services.reference_data import ReferenceTable


@pytest.fixture
def snapshot_file(tmp_path, sample_snapshot):
    path = tmp_path / "vehicles-data.json"
    path.write_text(json.dumps(sample_snapshot), encoding="utf-8")
    return path


class TestSnapshotIO:
    def test_backup_name(self, tmp_path):
        path = tmp_path / "vehicles-data.json"

        backup = backup_path_for(path, datetime(2025, 1, 31, 14, 5, 9))

        assert backup.name == "vehicles-data.backup-20250131_140509.json"

    def test_write_creates_backup(self, snapshot_file):
        original = snapshot_file.read_text(encoding="utf-8")

        backup = write_snapshot([{"name": "New"}], snapshot_file, now=datetime(2025, 1, 31, 14, 5, 9))

        assert backup.read_text(encoding="utf-8") == original
        assert json.loads(snapshot_file.read_text(encoding="utf-8")) == [{"name": "New"}]

    def test_write_without_existing_file(self, tmp_path):
        path = tmp_path / "nested" / "vehicles-data.json"

        assert write_snapshot([], path) is None
        assert path.exists()

    def test_write_keeps_unicode(self, tmp_path):
        path = tmp_path / "vehicles-data.json"

        write_snapshot([{"name": "Škoda Enyaq"}], path)

        assert "Škoda" in path.read_text(encoding="utf-8")

    def test_load_rejects_non_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"vehicles": []}', encoding="utf-8")

        with pytest.raises(ValidationException):
            load_snapshot(path)

    def test_vehicle_label(self):
        assert vehicle_label({"name": "BYD Seal", "modelTrim": "Premium", "country": "SG"}) == "BYD Seal Premium (SG)"
        assert vehicle_label({"name": "BYD Seal"}) == "BYD Seal"


class TestBatteryCapacity:
    def test_fills_missing_and_zero(self, sample_snapshot):
        report = backfill_battery_capacities(sample_snapshot)

        assert report.updated == 2
        assert sample_snapshot[0]["batteryCapacityKwh"] == 60.48
        assert sample_snapshot[1]["batteryCapacityKwh"] == 60.0
        assert sample_snapshot[2]["batteryCapacityKwh"] == 40

    def test_reports_unknown_vehicles(self):
        vehicles = [{"name": "Obscure Motors Zap", "modelTrim": "Base", "country": "MY", "batteryCapacityKwh": None}]

        report = backfill_battery_capacities(vehicles)

        assert report.updated == 0
        assert report.missing == {"batteryCapacityKwh": ["Obscure Motors Zap Base (MY)"]}
        assert vehicles[0]["batteryCapacityKwh"] is None


class TestBidirectional:
    def test_sets_known_values(self, sample_snapshot):
        sample_snapshot[1]["hasBidirectional"] = True

        report = backfill_bidirectional(sample_snapshot)

        assert sample_snapshot[0]["hasBidirectional"] is True
        assert sample_snapshot[1]["hasBidirectional"] is False
        assert report.updated == 2
        assert report.changes == ["BYD Atto 3 Extended (SG): True", "Tesla Model Y RWD (MY): False"]

    def test_unknown_keeps_existing_value(self, sample_snapshot):
        sample_snapshot[2]["hasBidirectional"] = True

        report = backfill_bidirectional(sample_snapshot)

        assert sample_snapshot[2]["hasBidirectional"] is True
        assert report.missing == {"hasBidirectional": ["Obscure Motors Zap Base (MY)"]}


class TestPopulateMissing:
    def test_counts_fields_and_reports_gaps(self, sample_snapshot):
        report = populate_missing_data(sample_snapshot)

        atto = sample_snapshot[0]
        assert atto["batteryCapacityKwh"] == 60.48
        assert atto["torqueNm"] == 310.0
        assert atto["batteryWarranty"] == "8 years / 150,000 km"
        assert atto["technologyFeatures"].startswith("OTA Updates")
        assert sample_snapshot[1]["torqueNm"] == 420
        assert report.updated == 5
        assert report.missing == {
            "torqueNm": ["Obscure Motors Zap Base (MY)"],
            "batteryWarranty": ["Obscure Motors Zap Base (MY)"],
        }

    def test_custom_tables(self):
        def table(entries):
            return ReferenceTable(name="t", version="1", description="", entries=entries)

        vehicles = [{"name": "Acme One", "modelTrim": None, "country": "SG"}]

        report = populate_missing_data(
            vehicles,
            capacities=table({"Acme One": {"": 50}}),
            torque=table({}),
            warranties=table({"Acme": "5 years"}),
            features=table({"Acme": "Heated Seats"}),
        )

        assert vehicles[0] == {
            "name": "Acme One",
            "modelTrim": None,
            "country": "SG",
            "batteryCapacityKwh": 50.0,
            "batteryWarranty": "5 years",
            "technologyFeatures": "Heated Seats",
        }
        assert report.updated == 3
        assert report.summary()["missing"] == {"torqueNm": 1}


class TestWltpEfficiency:
    def test_overwrites_known_values(self):
        vehicles = [
            {"name": "BYD Atto 3", "modelTrim": "Extended Range", "efficiencyKwhPer100km": 16.0},
            {"name": "Acme One", "modelTrim": None, "efficiencyKwhPer100km": 12.0},
            {"name": "Acme Two", "modelTrim": None, "efficiencyKwhPer100km": None},
        ]

        report = update_wltp_efficiency(vehicles)

        assert vehicles[0]["efficiencyKwhPer100km"] == 15.0
        assert vehicles[1]["efficiencyKwhPer100km"] == 12.0
        assert report.updated == 1
        assert report.changes == ["BYD Atto 3 Extended Range: 16.0 -> 15.0"]
        assert report.missing == {"efficiencyKwhPer100km": ["Acme Two"]}


class TestFeaturePrices:
    @pytest.mark.parametrize(
        "features,expected",
        [
            ("HUD (RM 5,000 option), Sunroof", "HUD, Sunroof"),
            ("Autopilot, FSD (RM 32,000 option), Premium Audio", "Autopilot, FSD, Premium Audio"),
            ("Matrix LED (SGD 3 500), Heat Pump", "Matrix LED, Heat Pump"),
            ("Panoramic Roof (2,000 option)", "Panoramic Roof"),
            ("Heat Pump (standard), V2L", "Heat Pump (standard), V2L"),
            ("", ""),
            (None, None),
        ],
    )
    def test_clean_feature_string(self, features, expected):
        assert clean_feature_string(features) == expected

    def test_clean_feature_prices(self, sample_snapshot):
        report = clean_feature_prices(sample_snapshot)

        assert report.updated == 1
        assert sample_snapshot[1]["technologyFeatures"] == "Autopilot, FSD, Premium Audio"
        assert sample_snapshot[2]["technologyFeatures"] == "Touchscreen"


class TestRunBackfill:
    def test_writes_snapshot_with_backup(self, snapshot_file):
        report = run_backfill("battery_capacity", snapshot_file)

        assert report.updated == 2
        saved = json.loads(snapshot_file.read_text(encoding="utf-8"))
        assert saved[0]["batteryCapacityKwh"] == 60.48
        assert len(list(snapshot_file.parent.glob("vehicles-data.backup-*.json"))) == 1

    def test_dry_run_leaves_file_alone(self, snapshot_file):
        before = snapshot_file.read_text(encoding="utf-8")

        report = run_backfill("battery_capacity", snapshot_file, dry_run=True)

        assert report.updated == 2
        assert snapshot_file.read_text(encoding="utf-8") == before
        assert list(snapshot_file.parent.glob("*.backup-*")) == []

    def test_unknown_operation(self, snapshot_file):
        with pytest.raises(ValidationException):
            run_backfill("recalculate_everything", snapshot_file)


class TestDatabaseOperations:
    async def _seed(self, db):
        repo = VehicleRepository(db)
        await repo.create({
            "name": "BYD Seal",
            "model_trim": "Premium",
            "country": "SG",
            "battery_capacity_kwh": 82.5,
            "efficiency_kwh_per_100km": 16.5,
            "acceleration_0_to_100_kmh": 5.9,
            "option_prices": [{"name": "Premium Package", "price": 3000.0}],
        })
        await repo.create({"name": "BYD Dolphin", "model_trim": None, "country": "SG"})
        await db.commit()

    @pytest.mark.asyncio
    async def test_export_snapshot(self, db_session, tmp_path):
        await self._seed(db_session)
        path = tmp_path / "vehicles-data.json"

        count = await export_snapshot(db_session, path)

        assert count == 2
        saved = json.loads(path.read_text(encoding="utf-8"))
        seal = next(v for v in saved if v["name"] == "BYD Seal")
        assert seal["modelTrim"] == "Premium"
        assert seal["batteryCapacityKwh"] == 82.5
        assert seal["efficiencyKwhPer100km"] == 16.5
        assert seal["acceleration0To100Kmh"] == 5.9
        assert seal["optionPrices"] == [{"name": "Premium Package", "price": 3000.0}]
        assert seal["isAvailable"] is True

    @pytest.mark.asyncio
    async def test_sync_ota_updates(self, db_session):
        await self._seed(db_session)
        entries = [
            {"name": "BYD Seal", "modelTrim": "Premium", "country": "SG", "otaUpdates": "Quarterly OTA"},
            {"name": "BYD Dolphin", "modelTrim": "", "country": "SG", "otaUpdates": "Monthly"},
            {"name": "BYD Seal", "modelTrim": "Premium", "country": "MY", "otaUpdates": "Quarterly OTA"},
            {"name": "BYD Atto 3", "modelTrim": "Extended", "country": "SG"},
        ]

        report = await sync_ota_updates(db_session, entries)

        assert (report.updated, report.not_found, report.skipped, report.errors) == (2, 1, 1, 0)
        repo = VehicleRepository(db_session)
        seal = await repo.find_by_natural_key("BYD Seal", "Premium", "SG")
        dolphin = await repo.find_by_natural_key("BYD Dolphin", None, "SG")
        assert seal.ota_updates == "Quarterly OTA"
        assert dolphin.ota_updates == "Monthly"

    @pytest.mark.asyncio
    async def test_sync_leaves_unrelated_rows(self, db_session):
        await self._seed(db_session)

        await sync_ota_updates(db_session, [{"name": "BYD Seal", "modelTrim": "Premium", "country": "SG", "otaUpdates": "x"}])

        dolphin = await VehicleRepository(db_session).find_by_natural_key("BYD Dolphin", None, "SG")
        assert dolphin.ota_updates is None
