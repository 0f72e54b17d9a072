"""Pydantic schemas for brand management."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BrandResponse(BaseModel):
    """Brand as shown on the Settings screen."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class BrandListResponse(BaseModel):
    """All brands ordered by name."""

    brands: list[BrandResponse]
    total: int = Field(..., ge=0)


class BrandCreate(BaseModel):
    """Request body for POST /brands."""

    name: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Brand name must not be blank")
        return v


class BrandUpdate(BaseModel):
    """Request body for PATCH /brands/{brand_id}; omitted fields are unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Brand name must not be blank")
        return v


class BrandDeleteResponse(BaseModel):
    """Outcome of deleting a brand."""

    name: str
    reassigned_to: str | None = None
    had_references: bool = Field(
        ..., description="True if sales, SKU, permission or target rows referenced the brand"
    )
