"""
API tests for vehicle endpoints.

Tests:
- GET /api/v1/vehicles - List vehicles with country/availability filters
- GET /api/v1/vehicles/{vehicle_id} - Get a single vehicle
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError


class TestListVehicles:
    """Tests for GET /api/v1/vehicles endpoint."""

    @pytest.mark.asyncio
    async def test_list_all_ordered_by_name(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles")

        assert response.status_code == 200
        names = [v["name"] for v in response.json()]
        assert names == ["BYD Atto 3", "BYD Seal", "Nissan Leaf", "Tesla Model 3"]

    @pytest.mark.asyncio
    async def test_filter_by_country(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles", params={"country": "MY"})

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["country"] == "MY"

    @pytest.mark.asyncio
    async def test_filter_by_availability(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles", params={"country": "SG", "available": "true"})

        names = [v["name"] for v in response.json()]
        assert names == ["BYD Seal", "Tesla Model 3"]

    @pytest.mark.asyncio
    async def test_discontinued_only(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles", params={"available": "false"})

        assert [v["name"] for v in response.json()] == ["Nissan Leaf"]

    @pytest.mark.asyncio
    async def test_non_true_availability_means_discontinued(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles", params={"available": "no-value"})

        assert response.status_code == 200
        assert [v["name"] for v in response.json()] == ["Nissan Leaf"]

    @pytest.mark.asyncio
    async def test_camel_case_fields(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles", params={"country": "SG", "available": "true"})

        seal = response.json()[0]
        assert seal["modelTrim"] == "Premium"
        assert seal["batteryCapacityKwh"] == 82.5
        assert seal["efficiencyKwhPer100km"] == 16.5
        assert seal["basePriceLocalCurrency"] == 215888.0
        assert seal["optionPrices"] == [{"name": "Premium Package", "price": 3000.0}]
        assert seal["isAvailable"] is True
        assert seal["torqueNm"] is None
        assert "model_trim" not in seal

    @pytest.mark.asyncio
    async def test_unknown_country_rejected(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get("/api/v1/vehicles", params={"country": "US"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_empty_database(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/vehicles")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_database_error(self, async_client: AsyncClient, monkeypatch):
        async def broken_list(self, country=None, available=None):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(
            "app.api.v1.endpoints.vehicles.VehicleRepository.list_vehicles",
            broken_list,
        )

        response = await async_client.get("/api/v1/vehicles")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "ERR_4010"
        assert error["message"] == "Failed to fetch vehicles"


class TestGetVehicle:
    """Tests for GET /api/v1/vehicles/{vehicle_id} endpoint."""

    @pytest.mark.asyncio
    async def test_get_vehicle(self, async_client: AsyncClient, seeded_vehicles):
        seal = seeded_vehicles["seal"]

        response = await async_client.get(f"/api/v1/vehicles/{seal.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(seal.id)
        assert response.json()["chargingCapabilities"] == "DC 150kW, V2L"

    @pytest.mark.asyncio
    async def test_vehicle_not_found(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get(f"/api/v1/vehicles/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ERR_4003"

    @pytest.mark.asyncio
    async def test_invalid_id(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/vehicles/not-a-uuid")

        assert response.status_code == 422
