"""create_dashboard_tables

Revision ID: 3c1e9a7d5b20
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1e9a7d5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _provenance() -> list[sa.Column]:
    return [
        sa.Column("source", sa.String(length=30), server_default="manual", nullable=False),
        sa.Column("source_id", sa.String(length=64), nullable=False),
        sa.Column("upload_batch_id", sa.String(length=64), nullable=True),
    ]


def upgrade() -> None:
    """Apply migration - create sales facts, brands, targets and permissions."""
    # Daily channel revenue
    op.create_table(
        "sales_data",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("brand", sa.String(length=100), nullable=False),
        sa.Column("channel", sa.String(length=100), nullable=False),
        sa.Column("revenue", sa.Numeric(precision=14, scale=2), nullable=False),
        *_provenance(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_data_date", "sales_data", ["date"])
    op.create_index("ix_sales_data_date_brand", "sales_data", ["date", "brand"])
    op.create_index("ix_sales_data_source_id", "sales_data", ["source_id"], unique=True)
    op.create_index("ix_sales_data_upload_batch_id", "sales_data", ["upload_batch_id"])
    op.create_index("ix_sales_data_brand_lower", "sales_data", [sa.text("lower(brand)")])
    op.create_index("ix_sales_data_channel_lower", "sales_data", [sa.text("lower(channel)")])

    # Daily SKU units and revenue
    op.create_table(
        "sku_sales_data",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("brand", sa.String(length=100), nullable=False),
        sa.Column("channel", sa.String(length=100), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=True),
        sa.Column("units", sa.Integer(), nullable=False),
        sa.Column("revenue", sa.Numeric(precision=14, scale=2), nullable=False),
        *_provenance(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("units >= 0", name="ck_sku_sales_data_units_positive"),
    )
    op.create_index("ix_sku_sales_data_date", "sku_sales_data", ["date"])
    op.create_index("ix_sku_sales_data_sku", "sku_sales_data", ["sku"])
    op.create_index("ix_sku_sales_data_date_channel", "sku_sales_data", ["date", "channel"])
    op.create_index("ix_sku_sales_data_source_id", "sku_sales_data", ["source_id"], unique=True)
    op.create_index("ix_sku_sales_data_upload_batch_id", "sku_sales_data", ["upload_batch_id"])

    # Brands
    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_brands_name", "brands", ["name"], unique=True)

    # Targets
    op.create_table(
        "targets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("brand", sa.String(length=100), nullable=False),
        sa.Column("channel", sa.String(length=100), nullable=False),
        sa.Column("period", sa.String(length=10), nullable=False),
        sa.Column("target", sa.Numeric(precision=14, scale=2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("year", "brand", "period", "channel", name="uq_targets_grain"),
        sa.CheckConstraint("target >= 0", name="ck_targets_target_positive"),
    )
    op.create_index("ix_targets_year", "targets", ["year"])

    # Brand visibility per user
    op.create_table(
        "user_brand_permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("brand", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_brand_permissions_user_id", "user_brand_permissions", ["user_id"])
    op.create_index("ix_user_brand_permissions_brand", "user_brand_permissions", ["brand"])


def downgrade() -> None:
    """Revert migration - drop dashboard tables."""
    op.drop_table("user_brand_permissions")
    op.drop_table("targets")
    op.drop_table("brands")
    op.drop_table("sku_sales_data")
    op.drop_table("sales_data")
