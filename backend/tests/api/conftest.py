"""
Pytest fixtures for API tests.

Provides:
- A FastAPI app with the v1 routers and exception handlers
- An httpx client bound to the app with get_db pointed at in-memory SQLite
- Seeded vehicle rows for two markets
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints import comparison, cron, health, metrics, vehicles
from app.core.error_handlers import setup_exception_handlers
from app.db.postgres.models import Vehicle
from app.db.postgres.session import get_db


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app() -> FastAPI:
    """Create a FastAPI app with all v1 routers."""
    test_app = FastAPI(default_response_class=ORJSONResponse)
    setup_exception_handlers(test_app)

    test_app.include_router(vehicles.router, prefix="/api/v1/vehicles", tags=["Vehicles"])
    test_app.include_router(comparison.router, prefix="/api/v1/comparison", tags=["Comparison"])
    test_app.include_router(cron.router, prefix="/api/v1/cron", tags=["Cron"])
    test_app.include_router(health.router, prefix="/api/v1/health", tags=["Health"])
    test_app.include_router(metrics.router, prefix="/api/v1/metrics", tags=["Metrics"])

    return test_app


@pytest_asyncio.fixture
async def async_client(app: FastAPI, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def cron_headers() -> dict[str, str]:
    """Authorization header matching CRON_SECRET from the test environment."""
    return {"Authorization": "Bearer test_cron_secret"}


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def seeded_vehicles(db_session: AsyncSession) -> dict[str, Vehicle]:
    """Four vehicles: three in SG (one discontinued) and one in MY."""
    now = datetime.now(UTC)
    rows = {
        "seal": Vehicle(
            country="SG",
            name="BYD Seal",
            model_trim="Premium",
            power_rating_kw=230.0,
            battery_capacity_kwh=82.5,
            range_km=570.0,
            efficiency_kwh_per_100km=16.5,
            base_price_local_currency=215888.0,
            charging_capabilities="DC 150kW, V2L",
            option_prices=[{"name": "Premium Package", "price": 3000.0}],
            is_available=True,
            updated_at=now,
        ),
        "model3": Vehicle(
            country="SG",
            name="Tesla Model 3",
            model_trim="RWD",
            power_rating_kw=208.0,
            battery_capacity_kwh=60.0,
            range_km=513.0,
            efficiency_kwh_per_100km=13.5,
            base_price_local_currency=190000.0,
            battery_warranty=None,
            is_available=True,
            updated_at=now,
        ),
        "leaf": Vehicle(
            country="SG",
            name="Nissan Leaf",
            model_trim="2019",
            battery_capacity_kwh=40.0,
            range_km=270.0,
            is_available=False,
            updated_at=now - timedelta(days=30),
        ),
        "atto3_my": Vehicle(
            country="MY",
            name="BYD Atto 3",
            model_trim="Extended",
            battery_capacity_kwh=60.48,
            range_km=480.0,
            efficiency_kwh_per_100km=15.0,
            base_price_local_currency=149800.0,
            is_available=True,
            updated_at=now,
        ),
    }
    db_session.add_all(rows.values())
    await db_session.commit()
    return rows
