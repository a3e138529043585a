"""
Vehicle schemas.

Responses use camelCase field names on the wire (``modelTrim``,
``batteryCapacityKwh``...) and accept either casing on input.
"""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OptionPriceSchema(CamelModel):
    """Schema for a configurator option and its price."""

    name: str = Field(..., description="Option name")
    price: float = Field(..., description="Price in local currency")


class VehicleResponse(CamelModel):
    """Schema for a single vehicle listing."""

    id: UUID = Field(..., description="Unique identifier")
    country: str = Field(..., description="Market (SG, MY, ID, PH, TH, VN)")
    name: str = Field(..., description="Vehicle name, e.g. 'Tesla Model 3'")
    model_trim: Optional[str] = Field(None, description="Trim level")
    image_url: Optional[str] = None

    power_rating_kw: Optional[float] = None
    torque_nm: Optional[float] = None
    acceleration_0_to_100_kmh: Optional[float] = Field(
        None, alias="acceleration0To100Kmh", description="0-100 km/h in seconds"
    )
    top_speed_kmh: Optional[float] = None
    curb_weight_kg: Optional[float] = None

    battery_capacity_kwh: Optional[float] = None
    battery_weight_kg: Optional[float] = None
    battery_weight_percentage: Optional[float] = None
    battery_manufacturer: Optional[str] = None
    battery_technology: Optional[str] = None
    battery_warranty: Optional[str] = None

    range_km: Optional[float] = Field(None, description="Primary range figure (usually WLTP)")
    range_wltp_km: Optional[float] = None
    range_epa_km: Optional[float] = None
    efficiency_kwh_per_100km: Optional[float] = Field(None, alias="efficiencyKwhPer100km")

    charging_time_dc_0_to_80_min: Optional[float] = Field(None, alias="chargingTimeDc0To80Min")
    charging_capabilities: Optional[str] = None
    has_bidirectional: Optional[bool] = None

    base_price_local_currency: Optional[float] = None
    on_the_road_price_local_currency: Optional[float] = None
    option_prices: List[OptionPriceSchema] = Field(default_factory=list)
    rebates: Optional[Any] = None

    technology_features: Optional[str] = None
    ota_updates: Optional[str] = None
    is_available: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VehicleSnapshot(VehicleResponse):
    """Vehicle as stored in the JSON snapshot; ``id`` may be absent."""

    id: Optional[UUID] = None  # type: ignore[assignment]
