"""
Tests for the EV specs API client.

Covers value parsing, record normalization and the fetch loop against a
mocked transport (httpx.MockTransport).
"""

import httpx
import pytest

from app.core.exceptions import ErrorCode, EVSpecsAPIException
from app.services.ev_api_service import (
    EVSpecsService,
    parse_number,
    transform_vehicle,
)


def make_service(handler, **kwargs) -> EVSpecsService:
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("request_interval_ms", 0)
    kwargs.setdefault("model_queries", ["Model 3"])
    return EVSpecsService(transport=httpx.MockTransport(handler), **kwargs)


class TestParseNumber:
    """Tests for loosely formatted provider values."""

    def test_parses_units(self):
        assert parse_number("220 kW") == 220.0
        assert parse_number("75.5 kWh") == 75.5

    def test_decimal_comma(self):
        assert parse_number("6,9 s") == 6.9

    def test_stops_at_second_dot(self):
        assert parse_number("1.2.3") == 1.2

    def test_missing_values(self):
        assert parse_number(None) is None
        assert parse_number("No Data") is None
        assert parse_number("...") is None

    def test_numeric_input(self):
        assert parse_number(42) == 42.0


class TestTransformVehicle:
    """Tests for provider record normalization."""

    def test_full_record(self, sample_api_vehicle):
        record = transform_vehicle(sample_api_vehicle, epa_ratio=0.75)

        assert record is not None
        assert record.name == "Tesla Model 3"
        assert record.model_trim == "2023"
        assert record.battery_capacity_kwh == 75.0
        assert record.efficiency_kwh_per_100km == pytest.approx(15.0)
        assert record.range_km == 500.0
        assert record.range_wltp_km == 500.0
        assert record.range_epa_km == 375.0
        assert record.power_rating_kw == 220.0
        assert record.charging_time_dc_0_to_80_min == 21.0
        assert record.acceleration_0_to_100_kmh == 6.1
        assert record.gross_vehicle_weight_kg == 2100.0
        assert record.raw_data == sample_api_vehicle

    def test_epa_range_from_wltp(self, sample_api_vehicle):
        sample_api_vehicle["electric_range"] = "400 km"

        record = transform_vehicle(sample_api_vehicle, epa_ratio=0.75)

        assert record.range_wltp_km == 400.0
        assert record.range_epa_km == 300.0

    def test_range_derived_from_consumption(self, sample_api_vehicle):
        del sample_api_vehicle["electric_range"]

        record = transform_vehicle(sample_api_vehicle, epa_ratio=0.75)

        # 75 kWh / 0.15 kWh per km
        assert record.range_km == 500.0

    def test_efficiency_from_capacity_uses_fallback_range(self):
        record = transform_vehicle({"make": "BYD", "model": "Dolphin", "battery_useable_capacity": "60 kWh"})

        assert record.efficiency_kwh_per_100km == pytest.approx(15.0)
        assert record.range_km is None
        assert record.range_epa_km is None

    def test_unusable_record_is_dropped(self):
        assert transform_vehicle({"make": "Mystery", "model": "X"}) is None

    def test_no_data_year_gives_no_trim(self, sample_api_vehicle):
        sample_api_vehicle["year_start"] = "No Data"

        assert transform_vehicle(sample_api_vehicle).model_trim is None

    def test_combined_consumption_sets_efficiency_and_range(self):
        record = transform_vehicle({
            "make": "Tesla",
            "model": "Model 3",
            "battery_useable_capacity": "75 kWh",
            "energy_consumption_combined_mild_weather": "150 Wh/km",
        })

        assert record.efficiency_kwh_per_100km == pytest.approx(15.0)
        assert record.range_km == 500.0

    def test_cold_weather_consumption_fallback(self, sample_api_vehicle):
        del sample_api_vehicle["energy_consumption_combined_mild_weather"]
        del sample_api_vehicle["electric_range"]
        sample_api_vehicle["energy_consumption_combined_cold_weather"] = "200 Wh/km"

        record = transform_vehicle(sample_api_vehicle, epa_ratio=0.75)

        assert record.efficiency_kwh_per_100km == pytest.approx(20.0)
        assert record.range_km == 375.0

    def test_charge_power_ignores_leading_connector_digits(self):
        record = transform_vehicle({
            "make": "BYD",
            "model": "Seal",
            "battery_useable_capacity": "82.5 kWh",
            "charge_power_10p_80p": "CCS2 150 kW",
        })

        # 82.5 * 0.7 / 150 * 60 = 23.1
        assert record.charging_time_dc_0_to_80_min == 23.0

    def test_charge_power_max_fallback(self):
        record = transform_vehicle({
            "make": "BYD",
            "model": "Seal",
            "battery_useable_capacity": "82.5 kWh",
            "charge_power_10p_80p": "No Data",
            "charge_power_max": "Type 2 / CCS2 up to 150 kW DC",
        })

        assert record.charging_time_dc_0_to_80_min == 23.0


class TestEVSpecsService:
    """Tests for the fetch loop."""

    @pytest.mark.asyncio
    async def test_fetch_all_success(self, sample_api_vehicle):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["X-Api-Key"] == "test-key"
            assert request.url.params["model"] == "Model 3"
            return httpx.Response(200, json=[sample_api_vehicle])

        async with make_service(handler) as service:
            records = await service.fetch_all()

        assert len(records) == 1
        assert records[0].name == "Tesla Model 3"

    @pytest.mark.asyncio
    async def test_duplicates_across_queries_are_merged(self, sample_api_vehicle):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[sample_api_vehicle])

        async with make_service(handler, model_queries=["Model 3", "Tesla"]) as service:
            records = await service.fetch_all()

        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_failed_query_is_skipped(self, sample_api_vehicle):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["model"] == "Broken":
                return httpx.Response(500, json={"error": "boom"})
            return httpx.Response(200, json=[sample_api_vehicle])

        async with make_service(handler, model_queries=["Broken", "Model 3"]) as service:
            records = await service.fetch_all()

        assert [r.name for r in records] == ["Tesla Model 3"]

    @pytest.mark.asyncio
    async def test_no_api_key_fetches_nothing(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        async with make_service(handler, api_key="") as service:
            assert await service.fetch_all() == []
        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,message",
        [(401, "Invalid API key"), (429, "Rate limit exceeded"), (503, "API error: 503")],
    )
    async def test_error_statuses(self, status_code, message):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={})

        async with make_service(handler) as service:
            with pytest.raises(EVSpecsAPIException) as exc_info:
                await service.fetch_by_model("Model 3")

        assert exc_info.value.message == message
        assert exc_info.value.upstream_status == status_code

    @pytest.mark.asyncio
    async def test_rate_limit_error_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={})

        async with make_service(handler) as service:
            with pytest.raises(EVSpecsAPIException) as exc_info:
                await service.fetch_by_model("Model 3")

        assert exc_info.value.code == ErrorCode.EV_SPECS_RATE_LIMITED
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self):
        seal = {"make": "BYD", "model": "Seal", "battery_useable_capacity": "82.5 kWh"}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["model"] == "Bad":
                return httpx.Response(200, json=["not-a-record"])
            return httpx.Response(200, json=[None, seal])

        async with make_service(handler, model_queries=["Bad", "Seal"]) as service:
            records = await service.fetch_all()

        assert [r.name for r in records] == ["BYD Seal"]

    @pytest.mark.asyncio
    async def test_unexpected_query_error_does_not_abort_fetch(self, sample_api_vehicle):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["model"] == "Explodes":
                raise RuntimeError("unexpected failure")
            return httpx.Response(200, json=[sample_api_vehicle])

        async with make_service(handler, model_queries=["Explodes", "Model 3"]) as service:
            records = await service.fetch_all()

        assert [r.name for r in records] == ["Tesla Model 3"]

    @pytest.mark.asyncio
    async def test_non_list_payload_is_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "unexpected"})

        async with make_service(handler) as service:
            assert await service.fetch_by_model("Model 3") == []

    def test_queries_capped_by_max_requests(self):
        service = EVSpecsService(api_key="k", model_queries=["a", "b", "c"], max_requests=2)

        assert service.model_queries == ["a", "b"]
