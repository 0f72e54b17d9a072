"""API routes for brand management (Settings screen)."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.features.audit.deps import get_actor
from app.features.audit.schemas import Actor
from app.features.brands.schemas import (
    BrandCreate,
    BrandDeleteResponse,
    BrandListResponse,
    BrandResponse,
    BrandUpdate,
)
from app.features.brands.service import BrandService
from app.features.sales_data.deps import get_data_service
from app.features.sales_data.service import DataService

router = APIRouter(prefix="/brands", tags=["brands"])


@router.get("", response_model=BrandListResponse, summary="List brands")
async def list_brands(
    active_only: bool = Query(False, description="Only return active brands"),
    db: AsyncSession = Depends(get_db),
) -> BrandListResponse:
    """List brands ordered by name."""
    return await BrandService().list_brands(db, active_only=active_only)


@router.post(
    "",
    response_model=BrandResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a brand",
)
async def create_brand(
    payload: BrandCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> BrandResponse:
    """Create a brand. Returns 409 if the name already exists."""
    return await BrandService().create_brand(db, payload, actor)


@router.patch("/{brand_id}", response_model=BrandResponse, summary="Rename or (de)activate")
async def update_brand(
    brand_id: int,
    payload: BrandUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> BrandResponse:
    """Update a brand's name or active flag."""
    return await BrandService().update_brand(db, brand_id, payload, actor)


@router.delete(
    "/{brand_id}",
    response_model=BrandDeleteResponse,
    summary="Delete a brand and its data",
    description="""
Deletes the brand's sales rows, SKU rows, brand permissions and targets in
bounded batches, then the brand itself. With `reassign_to`, sales, SKU and
permission rows move to that brand instead of being deleted.
""",
)
async def delete_brand(
    brand_id: int,
    reassign_to: str | None = Query(None, description="Brand that inherits the rows"),
    db: AsyncSession = Depends(get_db),
    data_service: DataService = Depends(get_data_service),
    actor: Actor = Depends(get_actor),
) -> BrandDeleteResponse:
    """Delete a brand, optionally reassigning its rows."""
    return await BrandService().delete_brand(
        db, data_service, brand_id, reassign_to=reassign_to, actor=actor
    )
