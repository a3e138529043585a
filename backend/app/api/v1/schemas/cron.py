"""
Ingestion cron schemas.
"""

from typing import List, Optional

from pydantic import Field

from app.api.v1.schemas.vehicle import CamelModel


class IngestionStatsSchema(CamelModel):
    """Counters of one ingestion run."""

    vehicles_processed: int = 0
    vehicles_created: int = 0
    vehicles_updated: int = 0
    outdated_marked: int = 0
    errors: int = Field(0, description="Number of per-vehicle or fetch errors")
    duration_ms: int = 0


class CronRunResponse(CamelModel):
    """Response of GET /cron/update-vehicles."""

    success: bool = True
    message: str = "Cron job executed successfully"
    timestamp: str
    stats: IngestionStatsSchema
    errors: Optional[List[str]] = Field(None, description="Error messages, when any")
