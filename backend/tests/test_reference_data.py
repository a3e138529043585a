"""
Tests for the static reference tables.
"""

import json

import pytest

from app.services.reference_data import (
    BATTERY_CAPACITIES,
    BATTERY_WARRANTIES,
    BIDIRECTIONAL_CHARGING,
    TECHNOLOGY_FEATURES,
    TORQUE,
    WLTP_EFFICIENCY,
    ReferenceTable,
    get_table,
    load_table,
    resolve_bidirectional,
    resolve_warranty,
    resolve_wltp_efficiency,
)


@pytest.fixture
def table():
    return ReferenceTable(
        name="test",
        version="1",
        description="",
        entries={
            "BYD Atto 3": {"Standard": 49.92, "Extended": 60.48},
            "Dongfeng Box E3": {"": 50.3},
            "Kia EV6": {"Air": 77.4},
        },
    )


class TestReferenceTable:
    def test_exact_match_is_case_insensitive(self, table):
        assert table.lookup("byd atto 3") == "BYD Atto 3"

    def test_substring_match_both_directions(self, table):
        assert table.lookup("BYD Atto 3 Dynamic") == "BYD Atto 3"
        assert table.lookup("Kia EV") == "Kia EV6"

    def test_no_match(self, table):
        assert table.lookup("Nissan Leaf") is None
        assert table.lookup("") is None
        assert table.lookup(None) is None

    def test_resolve_trim_exact_trim(self, table):
        assert table.resolve_trim("BYD Atto 3", "extended") == 60.48
        assert table.resolve_trim("BYD Atto 3", "Premium") is None

    def test_resolve_trim_without_trim(self, table):
        assert table.resolve_trim("Dongfeng Box E3", None) == 50.3
        assert table.resolve_trim("BYD Atto 3", None) is None

    def test_resolve_exact_skips_fuzzy(self, table):
        assert table.resolve_exact("Kia EV") is None


class TestLoadTable:
    def test_load_from_directory(self, tmp_path):
        (tmp_path / "custom.json").write_text(
            json.dumps({
                "version": "2024.2",
                "description": "Custom",
                "entries": {"a": 1},
                "notes": ["kept"],
            }),
            encoding="utf-8",
        )

        table = load_table("custom", tmp_path)

        assert table.version == "2024.2"
        assert table.entries == {"a": 1}
        assert table.extra == {"notes": ["kept"]}

    @pytest.mark.parametrize(
        "name",
        [BATTERY_CAPACITIES, TORQUE, BATTERY_WARRANTIES, TECHNOLOGY_FEATURES, BIDIRECTIONAL_CHARGING, WLTP_EFFICIENCY],
    )
    def test_packaged_tables_load(self, name):
        table = get_table(name)

        assert table.version
        assert table.entries


class TestBidirectional:
    def test_known_vehicles(self):
        assert resolve_bidirectional("Tesla Model 3") is False
        assert resolve_bidirectional("Tesla Cybertruck") is True
        assert resolve_bidirectional("BYD Atto 3") is True

    def test_capability_keywords(self):
        assert resolve_bidirectional("Unknown Brand X1", "AC 11kW, V2L 3.3kW") is True

    def test_brand_rules(self):
        assert resolve_bidirectional("Tesla Roadster") is False
        assert resolve_bidirectional("Porsche Macan Electric") is False
        assert resolve_bidirectional("Wuling Bingo") is True

    def test_unknown_vehicle(self):
        assert resolve_bidirectional("Unknown Brand X1", "AC 7kW") is None


class TestResolvers:
    def test_warranty_by_brand(self):
        assert resolve_warranty("BYD Seal") == "8 years / 150,000 km"
        assert resolve_warranty("Zeekr X") == "8 years / 200,000 km"
        assert resolve_warranty("") is None

    def test_wltp_efficiency(self):
        assert resolve_wltp_efficiency("Tesla Model 3", "RWD") == 13.5
        assert resolve_wltp_efficiency("BYD Atto 3", "Extended Range") == 15.0
