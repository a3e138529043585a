"""
Prometheus metrics endpoint for EVCompare backend.

Endpoints:
- /metrics - Prometheus text format metrics for scraping
- /metrics/prometheus - Alias for scrapers expecting that path
"""

from fastapi import APIRouter

from app.core.metrics import generate_metrics_response

router = APIRouter()


@router.get("", tags=["Metrics"])
async def get_metrics():
    """
    Prometheus metrics endpoint.

    Includes HTTP request counts and latencies, external API calls,
    ingestion runs, ingested and stale vehicles and option scrapes.
    """
    return generate_metrics_response()


@router.get("/prometheus", tags=["Metrics"])
async def get_prometheus_metrics():
    """Alias for main metrics endpoint (Prometheus format)."""
    return await get_metrics()
