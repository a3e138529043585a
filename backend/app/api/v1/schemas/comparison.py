"""
Comparison schemas.
"""

from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from app.api.v1.schemas.vehicle import CamelModel, VehicleResponse

SortField = Literal[
    "name",
    "range_km",
    "efficiency_kwh_per_100km",
    "base_price_local_currency",
    "power_rating_kw",
    "battery_weight_kg",
]


class ComparisonRequest(CamelModel):
    """Schema for a comparison request."""

    vehicle_ids: List[UUID] = Field(..., min_length=2, max_length=4, description="2 to 4 vehicle ids")
    sort_field: Optional[SortField] = Field(None, description="Column to sort by")
    sort_direction: Literal["asc", "desc"] = "asc"

    @field_validator("vehicle_ids")
    @classmethod
    def unique_ids(cls, v: List[UUID]) -> List[UUID]:
        if len(set(v)) != len(v):
            raise ValueError("vehicleIds must not contain duplicates")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vehicleIds": [
                    "0b1f5a52-6c1b-4a8e-9d51-2f7a0c7e9b11",
                    "7c2d3e4f-5a6b-4c7d-8e9f-0a1b2c3d4e5f",
                ],
                "sortField": "range_km",
                "sortDirection": "desc",
            }
        }
    )


class ComparedVehicle(VehicleResponse):
    """Vehicle row with derived comparison metrics."""

    horsepower: Optional[int] = None
    cost_per_km: Optional[float] = Field(None, description="Energy cost per km in local currency")
    cost_per_full_charge: Optional[float] = None
    currency: str = "USD"
    highlights: List[str] = Field(default_factory=list, description="Metrics where this row is best")


class ChartPoint(CamelModel):
    name: str
    value: float
    color: str


class ChartData(CamelModel):
    efficiency: List[ChartPoint] = Field(default_factory=list)
    range: List[ChartPoint] = Field(default_factory=list)
    cost_per_km: List[ChartPoint] = Field(default_factory=list)


class IceEquivalentSchema(CamelModel):
    """Fuel cost reference for comparable petrol cars."""

    country: str
    cost_per_km: float
    currency: str
    models: List[str]
    note: str


class ComparisonResponse(CamelModel):
    """Schema for a comparison result."""

    country: str
    vehicles: List[ComparedVehicle]
    best_values: Dict[str, Optional[float]]
    insights: List[str] = Field(default_factory=list)
    ice_equivalents: List[IceEquivalentSchema] = Field(default_factory=list)
    chart_data: ChartData
