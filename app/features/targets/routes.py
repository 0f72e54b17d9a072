"""API routes for revenue targets."""

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.features.audit.deps import get_actor
from app.features.audit.schemas import Actor
from app.features.sales_data.deps import get_data_service
from app.features.sales_data.service import DataService
from app.features.targets.schemas import (
    TargetListResponse,
    TargetProgress,
    TargetResponse,
    TargetSaveRequest,
)
from app.features.targets.service import TargetService

router = APIRouter(prefix="/targets", tags=["targets"])


@router.get("", response_model=TargetListResponse, summary="List targets for a year")
async def list_targets(
    year: int = Query(..., ge=2000, le=2100),
    brand: str | None = Query(None, description="Brand name or 'All Brands'"),
    db: AsyncSession = Depends(get_db),
) -> TargetListResponse:
    """List targets for a year, optionally for one brand."""
    return await TargetService().list_targets(db, year, brand)


@router.put("", response_model=list[TargetResponse], summary="Upsert targets")
async def save_targets(
    request: TargetSaveRequest,
    db: AsyncSession = Depends(get_db),
    data_service: DataService = Depends(get_data_service),
    actor: Actor = Depends(get_actor),
) -> list[TargetResponse]:
    """Insert or update targets on (year, brand, period, channel).

    Changed values are written to the audit log and target history.
    """
    return await TargetService().save_targets(db, request.targets, data_service, actor)


@router.get(
    "/progress",
    response_model=TargetProgress,
    summary="Revenue against target for a period",
    description="""
Compares revenue with the 100% and 85% targets per channel. Monthly views
take the month's share of its quarter's target by day count.
""",
)
async def get_progress(
    view: Literal["annual", "quarterly", "monthly"] = Query(...),
    year: int = Query(..., ge=2000, le=2100),
    period: str | None = Query(None, description="Quarter label for quarterly view"),
    month: int | None = Query(None, ge=1, le=12),
    brand: str | None = Query(None),
    as_of: date | None = Query(None, description="Day to measure pacing at (default today)"),
    db: AsyncSession = Depends(get_db),
    data_service: DataService = Depends(get_data_service),
) -> TargetProgress:
    """Return revenue, targets and pacing for the selected period."""
    return await TargetService().get_progress(
        db, data_service, view, year, period=period, month=month, brand=brand, today=as_of
    )
