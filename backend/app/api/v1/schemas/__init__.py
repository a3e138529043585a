# Schemas module
from app.api.v1.schemas.comparison import (
    ComparedVehicle,
    ComparisonRequest,
    ComparisonResponse,
)
from app.api.v1.schemas.cron import CronRunResponse, IngestionStatsSchema
from app.api.v1.schemas.vehicle import (
    CamelModel,
    OptionPriceSchema,
    VehicleResponse,
    VehicleSnapshot,
)

__all__ = [
    # Comparison schemas
    "ComparedVehicle",
    "ComparisonRequest",
    "ComparisonResponse",
    # Cron schemas
    "CronRunResponse",
    "IngestionStatsSchema",
    # Vehicle schemas
    "CamelModel",
    "OptionPriceSchema",
    "VehicleResponse",
    "VehicleSnapshot",
]
