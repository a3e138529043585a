"""
Vehicle endpoints - EV listings per Southeast Asian market.

Provides endpoints to:
- List vehicles, optionally filtered by market and availability
- Get a single vehicle by id
"""

from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.vehicle import VehicleResponse
from app.core.config import settings
from app.core.exceptions import VehicleFetchException, VehicleNotFoundException
from app.core.logging import get_logger
from app.db.postgres.models import Country
from app.db.postgres.repositories import VehicleRepository
from app.db.postgres.session import get_db

router = APIRouter()
logger = get_logger(__name__)


# =============================================================================
# OpenAPI Response Examples
# =============================================================================

VEHICLE_LIST_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    200: {
        "description": "Vehicles ordered by name",
        "content": {
            "application/json": {
                "example": [
                    {
                        "id": "0b1f5a52-6c1b-4a8e-9d51-2f7a0c7e9b11",
                        "country": "SG",
                        "name": "BYD Atto 3",
                        "modelTrim": "Extended Range",
                        "powerRatingKw": 150,
                        "batteryCapacityKwh": 60.48,
                        "rangeKm": 480,
                        "efficiencyKwhPer100km": 15.0,
                        "basePriceLocalCurrency": 164888,
                        "isAvailable": True,
                    }
                ]
            }
        },
    },
    500: {
        "description": "Database unavailable",
        "content": {
            "application/json": {
                "example": {
                    "error": {
                        "code": "ERR_4010",
                        "message": "Failed to fetch vehicles",
                        "request_id": "8c0d1c8e-2a5b-4d7e-9f3a-1b2c3d4e5f60",
                    }
                }
            }
        },
    },
}


@router.get(
    "",
    response_model=List[VehicleResponse],
    responses=VEHICLE_LIST_RESPONSES,
    summary="List vehicles",
)
async def list_vehicles(
    country: Optional[Country] = Query(None, description="Market code (SG, MY, ID, PH, TH, VN)"),
    available: Optional[str] = Query(
        None, description="\"true\" for available vehicles, any other value for discontinued ones"
    ),
    db: AsyncSession = Depends(get_db),
) -> List[VehicleResponse]:
    """
    List vehicles ordered by name.

    Without ``available`` both available and discontinued vehicles are
    returned. Any value other than "true" selects discontinued vehicles.
    """
    try:
        vehicles = await VehicleRepository(db).list_vehicles(
            country=country.value if country else None,
            available=None if available is None else available == "true",
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching vehicles: {e}", exc_info=True)
        details = {"error": str(e)} if settings.is_development else None
        raise VehicleFetchException(details=details)

    return [VehicleResponse.model_validate(v) for v in vehicles]


@router.get("/{vehicle_id}", response_model=VehicleResponse, summary="Get vehicle")
async def get_vehicle(
    vehicle_id: UUID = Path(..., description="Vehicle id"),
    db: AsyncSession = Depends(get_db),
) -> VehicleResponse:
    """Get a single vehicle by id."""
    vehicle = await VehicleRepository(db).get(vehicle_id)
    if vehicle is None:
        raise VehicleNotFoundException(vehicle_id=str(vehicle_id))
    return VehicleResponse.model_validate(vehicle)
