"""
SQLAlchemy models for PostgreSQL database.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(UTC)


class Country(StrEnum):
    """Southeast Asian markets with vehicle listings."""

    SG = "SG"
    MY = "MY"
    ID = "ID"
    PH = "PH"
    TH = "TH"
    VN = "VN"


class BatteryTechnology(StrEnum):
    NMC = "NMC"
    LFP = "LFP"
    SOLID_STATE = "SolidState"
    OTHER = "Other"


def _in_list(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Vehicle(Base):
    """
    One EV listing per (name, model_trim, country).

    Numeric columns are NULL when unknown; zero is never used as a
    placeholder. Rows are never deleted, the staleness sweep flips
    is_available instead.
    """

    __tablename__ = "vehicles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    country: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    model_trim: Mapped[str | None] = mapped_column(String(200))
    image_url: Mapped[str | None] = mapped_column(String(500))

    # Performance
    power_rating_kw: Mapped[float | None] = mapped_column(Float)
    torque_nm: Mapped[float | None] = mapped_column(Float)
    acceleration_0_to_100_kmh: Mapped[float | None] = mapped_column(Float)
    top_speed_kmh: Mapped[float | None] = mapped_column(Float)
    curb_weight_kg: Mapped[float | None] = mapped_column(Float)

    # Battery
    battery_capacity_kwh: Mapped[float | None] = mapped_column(Float)
    battery_weight_kg: Mapped[float | None] = mapped_column(Float)
    battery_weight_percentage: Mapped[float | None] = mapped_column(Float)
    battery_manufacturer: Mapped[str | None] = mapped_column(String(100))
    battery_technology: Mapped[str | None] = mapped_column(String(20))
    battery_warranty: Mapped[str | None] = mapped_column(String(200))

    # Range and efficiency
    range_km: Mapped[float | None] = mapped_column(Float)
    range_wltp_km: Mapped[float | None] = mapped_column(Float)
    range_epa_km: Mapped[float | None] = mapped_column(Float)
    efficiency_kwh_per_100km: Mapped[float | None] = mapped_column(Float)

    # Charging
    charging_time_dc_0_to_80_min: Mapped[float | None] = mapped_column(Float)
    charging_capabilities: Mapped[str | None] = mapped_column(Text)
    has_bidirectional: Mapped[bool | None] = mapped_column(Boolean)

    # Commercial
    base_price_local_currency: Mapped[float | None] = mapped_column(Float)
    on_the_road_price_local_currency: Mapped[float | None] = mapped_column(Float)
    option_prices: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    rebates: Mapped[Any | None] = mapped_column(JSONType)

    # Metadata
    technology_features: Mapped[str | None] = mapped_column(Text)
    ota_updates: Mapped[str | None] = mapped_column(Text)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint("name", "model_trim", "country", name="uq_vehicle_name_trim_country"),
        CheckConstraint(_in_list("country", [c.value for c in Country]), name="ck_vehicle_country"),
        CheckConstraint(
            "battery_technology IS NULL OR "
            + _in_list("battery_technology", [t.value for t in BatteryTechnology]),
            name="ck_vehicle_battery_technology",
        ),
        Index("ix_vehicles_country_available", "country", "is_available"),
        Index("ix_vehicles_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Vehicle {self.name} {self.model_trim or ''} ({self.country})>"


class AuditLog(Base):
    """Outcome of an ingestion run (CRON_RUN) or its failure (CRON_ERROR)."""

    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, default="vehicle")
    entity_id: Mapped[str | None] = mapped_column(String(100))
    changes: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=utc_now, index=True
    )
