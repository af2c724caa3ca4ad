"""Create access (API key) and readings tables.

Revision ID: 001_access_readings
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_access_readings"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    credential_role = postgresql.ENUM(
        "client", "station", "admin", name="credentialrole"
    )
    credential_role.create(op.get_bind())

    op.create_table(
        "access",
        sa.Column("id", sa.String(length=24), nullable=False),
        sa.Column(
            "role",
            postgresql.ENUM(
                "client", "station", "admin", name="credentialrole", create_type=False
            ),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "readings",
        sa.Column("id", sa.String(length=24), nullable=False),
        sa.Column("time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("device_id", sa.String(length=100), nullable=True),
        sa.Column("device_name", sa.String(length=255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("temperature_c", sa.Float(), nullable=True),
        sa.Column("temperature_f", sa.Float(), nullable=True),
        sa.Column("temperature_k", sa.Float(), nullable=True),
        sa.Column("atmospheric_pressure_kpa", sa.Float(), nullable=True),
        sa.Column("lightning_avg_distance_km", sa.Float(), nullable=True),
        sa.Column("lightning_strike_count", sa.Integer(), nullable=True),
        sa.Column("max_wind_speed_ms", sa.Float(), nullable=True),
        sa.Column("precipitation_mm_h", sa.Float(), nullable=True),
        sa.Column("solar_radiation_wm2", sa.Float(), nullable=True),
        sa.Column("vapor_pressure_kpa", sa.Float(), nullable=True),
        sa.Column("humidity_pct", sa.Float(), nullable=True),
        sa.Column("wind_direction_deg", sa.Float(), nullable=True),
        sa.Column("wind_speed_ms", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_readings_time", "readings", ["time"])
    op.create_index("ix_readings_device_time", "readings", ["device_id", "time"])


def downgrade() -> None:
    op.drop_index("ix_readings_device_time", table_name="readings")
    op.drop_index("ix_readings_time", table_name="readings")
    op.drop_table("readings")
    op.drop_table("access")
    op.execute("DROP TYPE IF EXISTS credentialrole")
