"""
Health check endpoints for EVCompare backend.

Endpoints:
- /health/live - Liveness probe (is the app running?)
- /health/ready - Readiness probe (can the app reach PostgreSQL?)
- /health/detailed - Database status, vehicle counts and last ingestion run
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.core.metrics import set_vehicle_count
from app.db.postgres.models import Vehicle
from app.db.postgres.repositories import AuditLogRepository
from app.db.postgres.session import get_db
from app.services.ingestion_service import CRON_ERROR, CRON_RUN

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class ServiceHealth(BaseModel):
    """Health status for a single service."""

    name: str
    status: str  # "healthy", "unhealthy"
    latency_ms: float = 0.0
    details: dict[str, Any] = {}
    error: str | None = None


class DetailedHealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    uptime_seconds: float
    services: dict[str, ServiceHealth]
    checked_at: str


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, bool]
    checked_at: str


class LivenessResponse(BaseModel):
    status: str
    checked_at: str


# Track startup time for uptime calculation
_startup_time: float | None = None


def get_startup_time() -> float:
    """Get or initialize startup time."""
    global _startup_time
    if _startup_time is None:
        _startup_time = time.time()
    return _startup_time


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


# =============================================================================
# Health Check Functions
# =============================================================================


async def check_postgres_health(db: AsyncSession) -> ServiceHealth:
    """Ping PostgreSQL and collect vehicle counts."""
    start_time = time.time()
    try:
        await db.execute(text("SELECT 1"))

        result = await db.execute(
            select(Vehicle.is_available, func.count()).group_by(Vehicle.is_available)
        )
        counts = {bool(available): count for available, count in result.all()}
        total = sum(counts.values())
        set_vehicle_count(total)

        return ServiceHealth(
            name="PostgreSQL",
            status="healthy",
            latency_ms=round((time.time() - start_time) * 1000, 2),
            details={
                "vehicles_total": total,
                "vehicles_available": counts.get(True, 0),
                "vehicles_unavailable": counts.get(False, 0),
            },
        )
    except Exception as e:
        logger.error(f"PostgreSQL health check failed: {e}")
        return ServiceHealth(
            name="PostgreSQL",
            status="unhealthy",
            latency_ms=round((time.time() - start_time) * 1000, 2),
            error=str(e),
        )


async def check_ingestion_health(db: AsyncSession) -> ServiceHealth:
    """Report the most recent ingestion outcome from the audit log."""
    try:
        audit = AuditLogRepository(db)
        last_run = await audit.latest(CRON_RUN)
        last_error = await audit.latest(CRON_ERROR)
    except Exception as e:
        return ServiceHealth(name="Ingestion", status="unhealthy", error=str(e))

    details: dict[str, Any] = {
        "last_run_at": last_run.created_at.isoformat() if last_run else None,
        "last_run": last_run.changes if last_run else None,
        "last_error_at": last_error.created_at.isoformat() if last_error else None,
    }
    failed_last = (
        last_error is not None
        and (last_run is None or last_error.created_at > last_run.created_at)
    )
    return ServiceHealth(
        name="Ingestion",
        status="unhealthy" if failed_last else "healthy",
        details=details,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/live", response_model=LivenessResponse, tags=["Health"])
async def liveness_check():
    """
    Liveness probe.

    Answers as long as the process can serve requests; touches no
    external service.
    """
    return LivenessResponse(status="alive", checked_at=_now())


@router.get("/ready", response_model=ReadinessResponse, tags=["Health"])
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness probe.

    Raises:
        HTTPException: 503 if PostgreSQL is unavailable
    """
    postgres = await check_postgres_health(db)
    checks = {"postgres": postgres.status == "healthy"}

    if not checks["postgres"]:
        logger.warning(
            "Readiness check failed",
            extra={"event": "readiness_failed", "checks": checks},
        )
        raise HTTPException(
            status_code=503,
            detail={
                "status": "not_ready",
                "checks": checks,
                "message": "Critical services unavailable",
            },
        )

    return ReadinessResponse(status="ready", checks=checks, checked_at=_now())


@router.get("/detailed", response_model=DetailedHealthResponse, tags=["Health"])
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """Database status, vehicle counts and the latest ingestion outcome."""
    uptime = time.time() - get_startup_time()

    services = {
        "postgres": await check_postgres_health(db),
        "ingestion": await check_ingestion_health(db),
    }
    overall_status = (
        "healthy" if all(s.status == "healthy" for s in services.values()) else "degraded"
    )
    if services["postgres"].status != "healthy":
        overall_status = "unhealthy"

    logger.info(
        "Detailed health check completed",
        extra={
            "event": "health_check_complete",
            "overall_status": overall_status,
            "services": {name: svc.status for name, svc in services.items()},
        },
    )

    return DetailedHealthResponse(
        status=overall_status,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        uptime_seconds=round(uptime, 2),
        services=services,
        checked_at=_now(),
    )
