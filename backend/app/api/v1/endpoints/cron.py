"""
Cron endpoints - scheduled vehicle ingestion.

The scheduler calls ``GET /cron/update-vehicles`` with
``Authorization: Bearer <CRON_SECRET>``.
"""

import hmac
from datetime import UTC, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.cron import CronRunResponse, IngestionStatsSchema
from app.core.config import settings
from app.core.exceptions import CronUnauthorizedException, IngestionException
from app.core.logging import get_logger
from app.db.postgres.session import get_db
from app.services.ingestion_service import IngestionService

router = APIRouter()
logger = get_logger(__name__)


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """
    Require ``Bearer <CRON_SECRET>``.

    With no secret configured every request is rejected.

    Raises:
        CronUnauthorizedException: On a missing or wrong secret
    """
    secret = settings.CRON_SECRET
    if not secret or not authorization:
        raise CronUnauthorizedException()
    expected = f"Bearer {secret}"
    if not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Rejected cron call with invalid secret")
        raise CronUnauthorizedException()


async def get_ingestion_service(db: AsyncSession = Depends(get_db)) -> IngestionService:
    return IngestionService(db)


@router.get(
    "/update-vehicles",
    response_model=CronRunResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)],
    summary="Run vehicle ingestion",
)
async def update_vehicles(
    service: IngestionService = Depends(get_ingestion_service),
) -> CronRunResponse:
    """
    Fetch specs, upsert every vehicle for every configured market, mark
    stale rows unavailable and record the run in the audit log.

    Per-vehicle failures do not fail the run; they are counted in
    ``stats.errors`` and listed in ``errors``.
    """
    logger.info(f"Starting vehicle data update at {datetime.now(UTC).isoformat()}")
    try:
        stats = await service.run()
    except Exception as e:
        logger.error(f"Cron job error: {e}", exc_info=True)
        timestamp = await service.record_failure(e)
        raise IngestionException(str(e), timestamp)

    logger.info(
        f"Cron job completed in {stats.duration_ms}ms",
        extra={
            "processed": stats.processed,
            "created": stats.created,
            "updated": stats.updated,
        },
    )
    return CronRunResponse(
        timestamp=datetime.now(UTC).isoformat(),
        stats=IngestionStatsSchema(
            vehicles_processed=stats.processed,
            vehicles_created=stats.created,
            vehicles_updated=stats.updated,
            outdated_marked=stats.outdated_marked,
            errors=len(stats.errors),
            duration_ms=stats.duration_ms,
        ),
        errors=stats.errors or None,
    )
