"""Pydantic schemas for revenue targets."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.shared.channels import canonical_channel

TargetPeriod = Literal["annual", "Q1", "Q2", "Q3", "Q4"]


class TargetIn(BaseModel):
    """One target cell as edited on the Settings screen."""

    year: int = Field(..., ge=2000, le=2100)
    brand: str = Field(..., min_length=1, max_length=100)
    channel: str = Field(..., min_length=1, max_length=100)
    period: TargetPeriod
    target: Decimal = Field(..., ge=0, decimal_places=2)

    @field_validator("period", mode="before")
    @classmethod
    def normalize_period(cls, v: object) -> object:
        """Accept 'Annual' and 'q1' style labels."""
        if isinstance(v, str):
            v = v.strip()
            return "annual" if v.lower() == "annual" else v.upper()
        return v

    @field_validator("brand")
    @classmethod
    def strip_brand(cls, v: str) -> str:
        return v.strip()

    @field_validator("channel")
    @classmethod
    def canonicalize_channel(cls, v: str) -> str:
        return canonical_channel(v) or v


class TargetResponse(BaseModel):
    """Stored target."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    year: int
    brand: str
    channel: str
    period: str
    target: Decimal
    updated_at: datetime


class TargetListResponse(BaseModel):
    """Targets for one year."""

    year: int
    targets: list[TargetResponse]
    total: int = Field(..., ge=0)


class TargetSaveRequest(BaseModel):
    """Request body for PUT /targets."""

    targets: list[TargetIn] = Field(..., min_length=1, max_length=5000)


class ChannelProgress(BaseModel):
    """Revenue against target for one channel."""

    channel: str
    revenue: float
    target: float
    target_85: float = Field(..., description="85% of the full target")
    achievement_percent: float | None = Field(
        None, description="Revenue as a percentage of target; None without a target"
    )


class TargetProgress(BaseModel):
    """Revenue, targets and pacing for a dashboard period."""

    view: Literal["annual", "quarterly", "monthly"]
    year: int
    period: str | None = None
    month: int | None = None
    brand: str | None = None
    days_in_period: int
    days_elapsed: int
    days_remaining: int
    total_revenue: float
    total_target: float
    total_target_85: float
    achievement_percent: float | None = None
    expected_to_date: float = Field(
        ..., description="Target prorated by elapsed days"
    )
    channels: list[ChannelProgress]
