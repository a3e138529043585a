"""
API v1 router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import comparison, cron, health, metrics, vehicles

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    vehicles.router,
    prefix="/vehicles",
    tags=["Vehicles"],
)

api_router.include_router(
    comparison.router,
    prefix="/comparison",
    tags=["Comparison"],
)

api_router.include_router(
    cron.router,
    prefix="/cron",
    tags=["Cron"],
)

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"],
)

api_router.include_router(
    metrics.router,
    prefix="/metrics",
    tags=["Metrics"],
)
