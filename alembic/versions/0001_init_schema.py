"""init schema

Revision ID: 0001_init_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_init_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_token", sa.String(length=255), nullable=False),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_companies_company_token", "companies", ["company_token"], unique=True)

    op.create_table(
        "devices",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("uuid", sa.String(length=255), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("company_token", sa.String(length=255), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=False),
        sa.Column("manufacturer", sa.String(length=255), nullable=True),
        sa.Column("framework", sa.String(length=255), nullable=True),
        sa.Column("version", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("uuid", "company_token", name="uq_devices_uuid_company_token"),
    )
    op.create_index("ix_devices_company_id", "devices", ["company_id"], unique=False)
    op.create_index("ix_devices_company_token", "devices", ["company_token"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("company_token", sa.String(length=255), nullable=False),
        sa.Column("device_id", sa.String(length=36), nullable=False),
        sa.Column("uuid", sa.String(length=64), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_locations_device_id", "locations", ["device_id"], unique=False)
    op.create_index("ix_locations_recorded_at", "locations", ["recorded_at"], unique=False)
    op.create_index(
        "ix_locations_company_device_recorded",
        "locations",
        ["company_id", "device_id", "recorded_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_locations_company_device_recorded", table_name="locations")
    op.drop_index("ix_locations_recorded_at", table_name="locations")
    op.drop_index("ix_locations_device_id", table_name="locations")
    op.drop_table("locations")

    op.drop_index("ix_devices_company_token", table_name="devices")
    op.drop_index("ix_devices_company_id", table_name="devices")
    op.drop_table("devices")

    op.drop_index("ix_companies_company_token", table_name="companies")
    op.drop_table("companies")
