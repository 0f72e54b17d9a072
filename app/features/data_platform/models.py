"""ORM models for the sales dashboard store.

Facts:
- SalesData: daily revenue per (date, brand, channel)
- SKUSalesData: daily units and revenue per (date, brand, channel, sku)

Reference tables:
- Brand: brands managed from the Settings screen
- Target: revenue targets per (year, brand, period, channel)
- UserBrandPermission: which brands a user may see

Audit tables:
- AuditLog: who did what, for the audit log screen
- TargetHistory: old and new value of every target edit

Brand and channel are stored as names rather than foreign keys; uploads
arrive with free-text names and the dashboard matches them
case-insensitively.
"""

import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.shared.models import ProvenanceMixin, TimestampMixin

# ============================================================================
# FACT TABLES
# ============================================================================


class SalesData(ProvenanceMixin, TimestampMixin, Base):
    """Daily channel revenue fact table.

    Attributes:
        id: Surrogate primary key.
        date: Sales day.
        brand: Brand name as uploaded.
        channel: Canonical channel name.
        revenue: Revenue for the day (refunds may make it negative).
        source_id: Deterministic external id (upsert conflict target).
    """

    __tablename__ = "sales_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    brand: Mapped[str] = mapped_column(String(100))
    channel: Mapped[str] = mapped_column(String(100))
    revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    __table_args__ = (
        Index("ix_sales_data_date_brand", "date", "brand"),
        Index("ix_sales_data_brand_lower", text("lower(brand)")),
        Index("ix_sales_data_channel_lower", text("lower(channel)")),
    )


class SKUSalesData(ProvenanceMixin, TimestampMixin, Base):
    """Daily SKU-level sales fact table.

    Attributes:
        id: Surrogate primary key.
        date: Sales day.
        brand: Brand name as uploaded.
        channel: Canonical channel name.
        sku: Stock keeping unit code.
        product_name: Optional display name from the upload.
        units: Units sold.
        revenue: Revenue for the SKU on that day.
    """

    __tablename__ = "sku_sales_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    brand: Mapped[str] = mapped_column(String(100))
    channel: Mapped[str] = mapped_column(String(100))
    sku: Mapped[str] = mapped_column(String(100), index=True)
    product_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    units: Mapped[int] = mapped_column(Integer, default=0)
    revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    __table_args__ = (
        Index("ix_sku_sales_data_date_channel", "date", "channel"),
        CheckConstraint("units >= 0", name="ck_sku_sales_data_units_positive"),
    )


# ============================================================================
# REFERENCE TABLES
# ============================================================================


class Brand(TimestampMixin, Base):
    """Brand managed from the Settings screen."""

    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")


class Target(TimestampMixin, Base):
    """Revenue target for one brand/channel in one period of a year.

    ``period`` is ``annual`` or a quarter label (``Q1``..``Q4``); monthly
    targets are derived from the quarter by day count.
    """

    __tablename__ = "targets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, index=True)
    brand: Mapped[str] = mapped_column(String(100))
    channel: Mapped[str] = mapped_column(String(100))
    period: Mapped[str] = mapped_column(String(10))
    target: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    __table_args__ = (
        UniqueConstraint("year", "brand", "period", "channel", name="uq_targets_grain"),
        CheckConstraint("target >= 0", name="ck_targets_target_positive"),
    )


class UserBrandPermission(TimestampMixin, Base):
    """Grants a user visibility of one brand."""

    __tablename__ = "user_brand_permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    brand: Mapped[str] = mapped_column(String(100), index=True)


# ============================================================================
# AUDIT TABLES
# ============================================================================


class AuditLog(Base):
    """Append-only record of a user action.

    Actions written by the API: ``kpi_target_update``, ``brand_created``,
    ``brand_updated``, ``brand_deleted`` and ``data_upload``. The actor
    fields are nullable because requests without user headers are still
    recorded.

    Attributes:
        action: Machine-readable action name (filterable).
        action_details: Action payload as JSONB.
        reference_id: Correlation id, e.g. the upload batch id.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_role: Mapped[str | None] = mapped_column(String(30), nullable=True)
    action: Mapped[str] = mapped_column(String(50))
    action_details: Mapped[dict[str, Any]] = mapped_column(
        JSONB, default=dict, server_default=text("'{}'::jsonb")
    )
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_audit_logs_action_created_at", "action", "created_at"),)


class TargetHistory(Base):
    """Old and new value of every target edit."""

    __tablename__ = "target_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer)
    brand: Mapped[str] = mapped_column(String(100))
    channel: Mapped[str] = mapped_column(String(100))
    period: Mapped[str] = mapped_column(String(10))
    old_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    new_value: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    changed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_target_history_year_brand", "year", "brand"),)
