"""EV vehicles and ingestion audit log.

Revision ID: 001_ev_schema
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_ev_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create vehicles and audit_logs tables."""
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("country", sa.String(2), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("model_trim", sa.String(200), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        # Performance
        sa.Column("power_rating_kw", sa.Float(), nullable=True),
        sa.Column("torque_nm", sa.Float(), nullable=True),
        sa.Column("acceleration_0_to_100_kmh", sa.Float(), nullable=True),
        sa.Column("top_speed_kmh", sa.Float(), nullable=True),
        sa.Column("curb_weight_kg", sa.Float(), nullable=True),
        # Battery
        sa.Column("battery_capacity_kwh", sa.Float(), nullable=True),
        sa.Column("battery_weight_kg", sa.Float(), nullable=True),
        sa.Column("battery_weight_percentage", sa.Float(), nullable=True),
        sa.Column("battery_manufacturer", sa.String(100), nullable=True),
        sa.Column("battery_technology", sa.String(20), nullable=True),
        sa.Column("battery_warranty", sa.String(200), nullable=True),
        # Range and efficiency
        sa.Column("range_km", sa.Float(), nullable=True),
        sa.Column("range_wltp_km", sa.Float(), nullable=True),
        sa.Column("range_epa_km", sa.Float(), nullable=True),
        sa.Column("efficiency_kwh_per_100km", sa.Float(), nullable=True),
        # Charging
        sa.Column("charging_time_dc_0_to_80_min", sa.Float(), nullable=True),
        sa.Column("charging_capabilities", sa.Text(), nullable=True),
        sa.Column("has_bidirectional", sa.Boolean(), nullable=True),
        # Commercial
        sa.Column("base_price_local_currency", sa.Float(), nullable=True),
        sa.Column("on_the_road_price_local_currency", sa.Float(), nullable=True),
        sa.Column(
            "option_prices",
            postgresql.JSONB(),
            nullable=True,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("rebates", postgresql.JSONB(), nullable=True),
        # Metadata
        sa.Column("technology_features", sa.Text(), nullable=True),
        sa.Column("ota_updates", sa.Text(), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "model_trim", "country", name="uq_vehicle_name_trim_country"),
        sa.CheckConstraint(
            "country IN ('SG', 'MY', 'ID', 'PH', 'TH', 'VN')",
            name="ck_vehicle_country",
        ),
        sa.CheckConstraint(
            "battery_technology IS NULL OR "
            "battery_technology IN ('NMC', 'LFP', 'SolidState', 'Other')",
            name="ck_vehicle_battery_technology",
        ),
    )
    op.create_index("ix_vehicles_country", "vehicles", ["country"])
    # Composite index for the list endpoint filters
    op.create_index("ix_vehicles_country_available", "vehicles", ["country", "is_available"])
    # Staleness sweep scans on updated_at
    op.create_index("ix_vehicles_updated_at", "vehicles", ["updated_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False, server_default="vehicle"),
        sa.Column("entity_id", sa.String(100), nullable=True),
        sa.Column("changes", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop audit_logs and vehicles tables and all indexes."""
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_vehicles_updated_at", table_name="vehicles")
    op.drop_index("ix_vehicles_country_available", table_name="vehicles")
    op.drop_index("ix_vehicles_country", table_name="vehicles")
    op.drop_table("vehicles")
