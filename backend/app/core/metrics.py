"""
Metrics collection for EVCompare.

Provides Prometheus-format metrics for:
- HTTP request count and latency by endpoint
- External API calls (vehicle specs provider)
- Ingestion runs, vehicle upserts and staleness sweeps
- Manufacturer option scrapes

Usage:
    from app.core.metrics import track_external_api_call

    with track_external_api_call("api_ninjas", "/electricvehicle") as ctx:
        response = await client.get(url)
        ctx["status_code"] = response.status_code
"""

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager, suppress
from typing import Any

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info(
    "evcompare_app",
    "EVCompare application information",
)
APP_INFO.info(
    {
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "service": settings.PROJECT_NAME,
    }
)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

REQUEST_COUNT = Counter(
    "evcompare_http_requests_total",
    "Total HTTP request count",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "evcompare_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

REQUEST_IN_PROGRESS = Gauge(
    "evcompare_http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

EXCEPTION_COUNT = Counter(
    "evcompare_exceptions_total",
    "Total unhandled exceptions",
    ["exception_type", "endpoint"],
)

# =============================================================================
# External API Metrics
# =============================================================================

EXTERNAL_API_CALLS = Counter(
    "evcompare_external_api_calls_total",
    "Total external API calls",
    ["service", "endpoint", "status_code"],
)

EXTERNAL_API_LATENCY = Histogram(
    "evcompare_external_api_duration_seconds",
    "External API call latency in seconds",
    ["service"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

EXTERNAL_API_ERRORS = Counter(
    "evcompare_external_api_errors_total",
    "Total external API errors",
    ["service", "error_type"],
)

# =============================================================================
# Ingestion Metrics
# =============================================================================

INGESTION_RUNS = Counter(
    "evcompare_ingestion_runs_total",
    "Total vehicle ingestion runs",
    ["status"],
)

INGESTION_DURATION = Histogram(
    "evcompare_ingestion_duration_seconds",
    "Vehicle ingestion run duration in seconds",
    buckets=[1, 5, 15, 30, 60, 120, 300, 600],
)

INGESTED_VEHICLES = Counter(
    "evcompare_ingested_vehicles_total",
    "Vehicles handled by ingestion runs",
    ["country", "result"],
)

STALE_VEHICLES_MARKED = Counter(
    "evcompare_stale_vehicles_marked_total",
    "Vehicles marked unavailable by the staleness sweep",
)

OPTION_SCRAPES = Counter(
    "evcompare_option_scrapes_total",
    "Manufacturer configurator scrapes",
    ["brand", "status"],
)

VEHICLES_TOTAL = Gauge(
    "evcompare_vehicles_total",
    "Number of vehicle rows in the database",
)


# =============================================================================
# Tracking Helpers
# =============================================================================


@contextmanager
def track_external_api_call(
    service: str,
    endpoint: str = "",
) -> Generator[dict[str, Any], None, None]:
    """
    Context manager for tracking external API call metrics.

    Args:
        service: External service name
        endpoint: API endpoint

    Usage:
        with track_external_api_call("api_ninjas", "/electricvehicle") as ctx:
            response = await client.get(url)
            ctx["status_code"] = response.status_code
    """
    start_time = time.time()
    context: dict[str, Any] = {"status_code": 0}

    try:
        yield context
    except Exception as e:
        EXTERNAL_API_ERRORS.labels(
            service=service,
            error_type=type(e).__name__,
        ).inc()
        raise
    finally:
        duration = time.time() - start_time

        EXTERNAL_API_CALLS.labels(
            service=service,
            endpoint=endpoint,
            status_code=str(context.get("status_code", 0)),
        ).inc()

        EXTERNAL_API_LATENCY.labels(service=service).observe(duration)


def track_ingestion_run(success: bool, duration_seconds: float) -> None:
    """Track the outcome of a full ingestion run."""
    INGESTION_RUNS.labels(status="success" if success else "error").inc()
    INGESTION_DURATION.observe(duration_seconds)


def track_ingested_vehicle(country: str, result: str) -> None:
    """Track one vehicle upsert. result is created, updated or error."""
    INGESTED_VEHICLES.labels(country=country, result=result).inc()


def track_stale_vehicles(count: int) -> None:
    if count > 0:
        STALE_VEHICLES_MARKED.inc(count)


def track_option_scrape(brand: str, success: bool) -> None:
    OPTION_SCRAPES.labels(brand=brand, status="success" if success else "error").inc()


def set_vehicle_count(count: int) -> None:
    if count >= 0:
        VEHICLES_TOTAL.set(count)


def track_request_start(method: str, endpoint: str) -> None:
    """Track request start for in-progress gauge."""
    REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()


def track_request_complete(
    method: str,
    endpoint: str,
    status_code: int,
    duration: float,
) -> None:
    """Track request completion metrics."""
    REQUEST_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()

    REQUEST_COUNT.labels(
        method=method,
        endpoint=endpoint,
        status_code=str(status_code),
    ).inc()

    REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(duration)


def track_exception(exception_type: str, endpoint: str = "unknown") -> None:
    """Track an unhandled exception."""
    EXCEPTION_COUNT.labels(exception_type=exception_type, endpoint=endpoint).inc()


# =============================================================================
# Metrics Middleware
# =============================================================================


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware for automatic request metrics collection.

    Tracks request count by method, endpoint and status, request latency
    and requests in progress.
    """

    # Probe endpoints are excluded to keep label cardinality low
    EXCLUDED_ENDPOINTS = {"/health", "/api/v1/health/live", "/api/v1/health/ready", "/api/v1/metrics"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        endpoint = self._normalize_endpoint(request.url.path)

        if endpoint in self.EXCLUDED_ENDPOINTS:
            return await call_next(request)

        method = request.method
        track_request_start(method, endpoint)
        start_time = time.time()

        try:
            response = await call_next(request)
            track_request_complete(
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                duration=time.time() - start_time,
            )
            return response

        except Exception as e:
            track_request_complete(
                method=method,
                endpoint=endpoint,
                status_code=500,
                duration=time.time() - start_time,
            )
            track_exception(type(e).__name__, endpoint)
            raise

    def _normalize_endpoint(self, path: str) -> str:
        """
        Normalize endpoint path to prevent cardinality explosion.

        Replaces vehicle ids with a placeholder.
        """
        normalized_parts = []

        for part in path.split("/"):
            if not part:
                continue
            if self._is_uuid(part) or part.isdigit():
                normalized_parts.append("{id}")
            else:
                normalized_parts.append(part)

        return "/" + "/".join(normalized_parts) if normalized_parts else "/"

    @staticmethod
    def _is_uuid(value: str) -> bool:
        """Check if value looks like a UUID."""
        import uuid as uuid_module

        with suppress(ValueError, AttributeError):
            uuid_module.UUID(value)
            return True
        return False


# =============================================================================
# Metrics Export
# =============================================================================


def generate_metrics_response() -> Response:
    """Generate Prometheus metrics response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
