"""
API tests for comparison endpoints.

Tests:
- POST /api/v1/comparison - Compare 2 to 4 vehicles from one market
- GET /api/v1/comparison/export - Download a comparison as CSV
"""

import csv
import io
from datetime import date
from uuid import uuid4

import pytest
from httpx import AsyncClient


class TestCompareVehicles:
    """Tests for POST /api/v1/comparison endpoint."""

    @pytest.mark.asyncio
    async def test_compare_two_vehicles(self, async_client: AsyncClient, seeded_vehicles):
        seal, model3 = seeded_vehicles["seal"], seeded_vehicles["model3"]

        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(seal.id), str(model3.id)]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["country"] == "SG"
        assert [v["name"] for v in data["vehicles"]] == ["BYD Seal", "Tesla Model 3"]
        assert data["bestValues"]["range_km"] == 570.0
        assert data["bestValues"]["efficiency_kwh_per_100km"] == 13.5
        assert len(data["insights"]) == 3
        assert data["iceEquivalents"][0]["costPerKm"] == 0.24

    @pytest.mark.asyncio
    async def test_derived_metrics(self, async_client: AsyncClient, seeded_vehicles):
        seal, model3 = seeded_vehicles["seal"], seeded_vehicles["model3"]

        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(seal.id), str(model3.id)]},
        )

        seal_row = response.json()["vehicles"][0]
        assert seal_row["horsepower"] == 308
        assert seal_row["currency"] == "SGD"
        assert seal_row["costPerFullCharge"] == pytest.approx(41.25)
        assert seal_row["costPerKm"] == pytest.approx(82.5 * 0.5 / 570)
        assert "range_km" in seal_row["highlights"]
        assert "efficiency_kwh_per_100km" not in seal_row["highlights"]

    @pytest.mark.asyncio
    async def test_sorting(self, async_client: AsyncClient, seeded_vehicles):
        seal, model3 = seeded_vehicles["seal"], seeded_vehicles["model3"]

        response = await async_client.post(
            "/api/v1/comparison",
            json={
                "vehicleIds": [str(seal.id), str(model3.id)],
                "sortField": "efficiency_kwh_per_100km",
                "sortDirection": "asc",
            },
        )

        assert [v["name"] for v in response.json()["vehicles"]] == ["Tesla Model 3", "BYD Seal"]

    @pytest.mark.asyncio
    async def test_chart_data(self, async_client: AsyncClient, seeded_vehicles):
        seal, model3 = seeded_vehicles["seal"], seeded_vehicles["model3"]

        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(seal.id), str(model3.id)]},
        )

        chart = response.json()["chartData"]
        assert [p["name"] for p in chart["range"]] == ["BYD Seal Premium", "Tesla Model 3 RWD"]
        assert chart["costPerKm"][-1]["name"] == "ICE² (SG)"

    @pytest.mark.asyncio
    async def test_single_vehicle_rejected(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(seeded_vehicles["seal"].id)]},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_five_vehicles_rejected(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(uuid4()) for _ in range(5)]},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicates_rejected(self, async_client: AsyncClient, seeded_vehicles):
        seal_id = str(seeded_vehicles["seal"].id)

        response = await async_client.post("/api/v1/comparison", json={"vehicleIds": [seal_id, seal_id]})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_mixed_countries_rejected(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(seeded_vehicles["seal"].id), str(seeded_vehicles["atto3_my"].id)]},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ERR_4020"

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.post(
            "/api/v1/comparison",
            json={"vehicleIds": [str(seeded_vehicles["seal"].id), str(uuid4())]},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ERR_4003"


class TestExportComparison:
    """Tests for GET /api/v1/comparison/export endpoint."""

    @pytest.mark.asyncio
    async def test_export_csv(self, async_client: AsyncClient, seeded_vehicles):
        seal, model3 = seeded_vehicles["seal"], seeded_vehicles["model3"]

        response = await async_client.get(
            "/api/v1/comparison/export",
            params={"ids": f"{seal.id},{model3.id}"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        expected_name = f"ev-comparison-{date.today().isoformat()}.csv"
        assert response.headers["content-disposition"] == f"attachment; filename={expected_name}"

        rows = list(csv.reader(io.StringIO(response.text)))
        assert len(rows) == 3
        model3_row = dict(zip(rows[0], rows[2]))
        assert model3_row["Name"] == "Tesla Model 3"
        assert model3_row["Battery Warranty"] == "N/A"
        assert model3_row["Base Price"] == "SGD 190,000"

    @pytest.mark.asyncio
    async def test_export_single_vehicle(self, async_client: AsyncClient, seeded_vehicles):
        response = await async_client.get(
            "/api/v1/comparison/export",
            params={"ids": str(seeded_vehicles["leaf"].id)},
        )

        assert response.status_code == 200
        assert len(list(csv.reader(io.StringIO(response.text)))) == 2

    @pytest.mark.asyncio
    async def test_export_invalid_id(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/comparison/export", params={"ids": "abc"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "ERR_4020"

    @pytest.mark.asyncio
    async def test_export_too_many(self, async_client: AsyncClient):
        ids = ",".join(str(uuid4()) for _ in range(5))

        response = await async_client.get("/api/v1/comparison/export", params={"ids": ids})

        assert response.status_code == 400
