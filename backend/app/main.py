"""
EVCompare - Electric vehicle comparison for Southeast Asian markets
Main FastAPI Application Entry Point
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.error_handlers import setup_all_exception_handlers
from app.core.logging import RequestLoggingMiddleware, get_logger, setup_logging
from app.core.metrics import MetricsMiddleware
from app.db.postgres.session import check_database_connection, dispose_engine
from app.services.ev_api_service import close_ev_specs_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    setup_logging()
    logger.info("Starting EVCompare backend service")

    if not await check_database_connection():
        logger.warning("Database not reachable at startup, readiness probe will fail")

    if not settings.API_NINJAS_KEY:
        logger.warning("API_NINJAS_KEY not set, ingestion runs will fetch no vehicles")
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET not set, the cron endpoint rejects every request")

    yield

    # Shutdown
    logger.info("Shutting down EVCompare backend service")
    await close_ev_specs_service()
    await dispose_engine()
    logger.info("Database connections closed")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    # OpenAPI tags metadata for documentation
    tags_metadata = [
        {
            "name": "Health",
            "description": "Service health monitoring and readiness probes.",
        },
        {
            "name": "Vehicles",
            "description": "EV listings per market (SG, MY, ID, PH, TH, VN), filterable by availability.",
        },
        {
            "name": "Comparison",
            "description": "Side-by-side comparison of 2 to 4 vehicles with derived cost metrics, chart series and CSV export.",
        },
        {
            "name": "Cron",
            "description": "Scheduled ingestion of vehicle specifications. Requires the shared cron secret.",
        },
        {
            "name": "Metrics",
            "description": "Prometheus metrics for monitoring.",
        },
    ]

    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
# EVCompare API

Browse and compare electric vehicles sold in Southeast Asian markets.

## Features

- **Vehicle catalogue**: Specifications, prices and availability per market
- **Comparison**: Best values, cost per km, insights and ICE fuel cost references
- **CSV export**: Download any comparison
- **Scheduled ingestion**: Specifications refreshed from API Ninjas

## Cron authentication

```
Authorization: Bearer <CRON_SECRET>
```
        """,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        openapi_tags=tags_metadata,
    )

    # GZip compression middleware - compress responses > 1KB
    application.add_middleware(GZipMiddleware, minimum_size=1000)

    # Metrics collection middleware (collects request metrics for Prometheus)
    application.add_middleware(MetricsMiddleware)

    # Request logging middleware (must be added before CORS)
    application.add_middleware(RequestLoggingMiddleware)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With",
            "X-Request-ID",
        ],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    @application.middleware("http")
    async def add_security_headers(request: Request, call_next):
        """Add security headers to all responses."""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not settings.DEBUG:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Setup exception handlers
    setup_all_exception_handlers(application)

    # Include API router
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Root health check endpoint for container orchestration
    @application.get("/health", tags=["Health"])
    async def health_check():
        """Basic health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "service": "evcompare-backend",
            "environment": settings.ENVIRONMENT,
        }

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
