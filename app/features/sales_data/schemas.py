"""Pydantic schemas for the sales data loader and its API."""

from datetime import date as date_type
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.features.sales_data.policies import coerce_day, coerce_revenue
from app.shared.channels import canonical_channel

SalesView = Literal["annual", "quarterly", "monthly", "custom"]
GroupBy = Literal["day", "date", "month", "quarter", "sku"]
AggregateSource = Literal["aggregate", "raw"]


# =============================================================================
# Filters
# =============================================================================


class SalesFilters(BaseModel):
    """Filter set accepted by every load operation.

    Brand and channel values equal to an "all" sentinel, or blank, mean
    no filter. Missing dates leave the window unbounded on that side.
    """

    model_config = ConfigDict(frozen=True)

    start_date: date_type | None = None
    end_date: date_type | None = None
    brand: str | None = None
    channel: str | None = None
    sku: str | None = None
    view: SalesView | None = None
    group_by: GroupBy | None = None

    @model_validator(mode="after")
    def validate_date_range(self) -> "SalesFilters":
        """Ensure end_date is not before start_date."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be greater than or equal to start_date")
        return self


# =============================================================================
# Records
# =============================================================================


class SalesRecord(BaseModel):
    """Normalized daily channel revenue row."""

    date: str = Field(..., description="Sales day as YYYY-MM-DD")
    brand: str
    channel: str
    revenue: float = 0.0
    source_id: str | None = None


class SKURecord(BaseModel):
    """Normalized SKU row, raw daily or grouped by the aggregation procedure."""

    date: str = Field(..., description="Sales day or period start as YYYY-MM-DD")
    brand: str
    channel: str
    sku: str
    units: int = 0
    revenue: float = 0.0
    product_name: str | None = None
    source_id: str | None = None
    record_count: int | None = None


class SalesRowIn(BaseModel):
    """Incoming sales row; coerces dates, revenue and channel names."""

    date: str
    brand: str = Field(..., min_length=1, max_length=100)
    channel: str = Field(..., min_length=1, max_length=100)
    revenue: float = 0.0
    source_id: str | None = Field(default=None, max_length=64)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> str:
        """Truncate timestamps to the plain day string."""
        return coerce_day(v)

    @field_validator("revenue", mode="before")
    @classmethod
    def coerce_revenue_value(cls, v: Any) -> float:
        """Parse numeric strings; anything unparseable becomes 0.0."""
        return coerce_revenue(v)

    @field_validator("channel")
    @classmethod
    def canonicalize_channel(cls, v: str) -> str:
        """Map channel aliases to the canonical channel name."""
        return canonical_channel(v)

    @field_validator("brand")
    @classmethod
    def strip_brand(cls, v: str) -> str:
        return v.strip()


class SKURowIn(SalesRowIn):
    """Incoming SKU row."""

    sku: str = Field(..., min_length=1, max_length=100)
    units: int = Field(default=0, ge=0)
    product_name: str | None = Field(default=None, max_length=255)

    @field_validator("units", mode="before")
    @classmethod
    def coerce_units(cls, v: Any) -> int:
        """Accept floats and numeric strings for unit counts."""
        if v is None or v == "":
            return 0
        try:
            return int(float(v))
        except (TypeError, ValueError):
            return 0

    @field_validator("sku")
    @classmethod
    def strip_sku(cls, v: str) -> str:
        return v.strip()


# =============================================================================
# Aggregates
# =============================================================================


class TrendPoint(BaseModel):
    """One point of the revenue trend series."""

    date: str
    brand: str
    channel: str
    revenue: float


class AggregatedSales(BaseModel):
    """Channel totals plus trend series for the dashboard cards and charts."""

    total_revenue: float = 0.0
    channel_revenues: dict[str, float] = Field(default_factory=dict)
    trend_series: list[TrendPoint] = Field(default_factory=list)
    source: AggregateSource = Field(
        default="raw",
        description="'aggregate' when server-side procedures produced the result",
    )


class SKUComparisonDetail(BaseModel):
    """Comparison period figures attached to one current-period SKU row."""

    revenue: float
    units: int
    growth_amount: float
    growth_percent: float | None = Field(
        None, description="Rounded to 2 decimals; None when comparison revenue is zero"
    )


class SKUComparisonRow(SKURecord):
    """Current-period SKU row with its comparison figures."""

    comparison: SKUComparisonDetail | None = None


class SKUComparison(BaseModel):
    """Result of loading two periods of SKU data side by side."""

    current: list[SKURecord]
    comparison: list[SKURecord]
    merged: list[SKUComparisonRow]


# =============================================================================
# Writes
# =============================================================================


class SaveResponse(BaseModel):
    """Outcome of a single write of a row set."""

    inserted_count: int = Field(0, ge=0, description="Rows inserted or upserted")
    updated_count: int = Field(0, ge=0, description="Existing rows updated one by one")
    duplicate_count: int = Field(0, ge=0, description="Rows that still collided after fallback")
    failed_count: int = Field(0, ge=0)
    total_processed: int = Field(0, ge=0)


class BatchProgress(BaseModel):
    """Progress report sent after every batch of a bulk save."""

    batch_number: int = Field(..., ge=1)
    total_batches: int = Field(..., ge=1)
    rows_processed: int = Field(..., ge=0)
    total_rows: int = Field(..., ge=0)
    succeeded: bool
    error: str | None = None


class BatchSaveSummary(BaseModel):
    """Partial-failure accounting for a bulk save."""

    success: int = Field(0, ge=0, description="Batches written")
    failed: int = Field(0, ge=0, description="Batches with invalid rows or a failed write")
    inserted: int = Field(0, ge=0)
    updated: int = Field(0, ge=0)
    duplicates: int = Field(0, ge=0)
    failed_rows: int = Field(0, ge=0)
    errors: list[str] = Field(default_factory=list)


class SalesSaveRequest(BaseModel):
    """Request body for POST /sales/records."""

    records: list[SalesRowIn] = Field(..., min_length=1, max_length=100000)
    batch_size: int | None = Field(default=None, ge=1, le=10000)


class SKUSaveRequest(BaseModel):
    """Request body for POST /sales/sku."""

    records: list[SKURowIn] = Field(..., min_length=1, max_length=100000)
    batch_size: int | None = Field(default=None, ge=1, le=10000)


class BatchSaveRequest(BaseModel):
    """Request body for the batch save routes.

    Records are validated row by row while saving, so a malformed row fails
    its own batch instead of rejecting the whole upload.
    """

    records: list[dict[str, Any]] = Field(..., min_length=1, max_length=100000)
    batch_size: int | None = Field(default=None, ge=1, le=10000)


# =============================================================================
# Cache
# =============================================================================


class CacheStats(BaseModel):
    """Loader cache statistics."""

    size: int
    keys: list[str]
    memory_usage: int = Field(..., description="Estimated bytes of cached payloads")
    hits: int
    misses: int


class CacheClearResponse(BaseModel):
    """Response body for DELETE /sales/cache."""

    cleared: int
    key: str | None = None
