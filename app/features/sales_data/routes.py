"""API routes for loading and saving dashboard sales data."""

from dataclasses import dataclass
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.features.audit.deps import get_actor
from app.features.audit.schemas import Actor
from app.features.sales_data.deps import get_data_service
from app.features.sales_data.schemas import (
    AggregatedSales,
    BatchSaveRequest,
    BatchSaveSummary,
    CacheClearResponse,
    CacheStats,
    GroupBy,
    SalesFilters,
    SalesRecord,
    SalesSaveRequest,
    SalesView,
    SaveResponse,
    SKUComparison,
    SKURecord,
    SKUSaveRequest,
)
from app.features.sales_data.service import DataService
from app.shared.periods import comparison_range, resolve_period_range

logger = get_logger(__name__)

router = APIRouter(prefix="/sales", tags=["sales"])


@dataclass(frozen=True)
class PeriodSelection:
    """Dashboard period selectors as sent by the view controls."""

    view: SalesView | None = None
    year: int | None = None
    period: str | None = None
    month: int | None = None


def select_period(
    view: SalesView | None = Query(None, description="Dashboard period view"),
    year: int | None = Query(None, ge=2000, le=2100, description="Year for the period view"),
    period: str | None = Query(None, description="Quarter label Q1..Q4 for quarterly view"),
    month: int | None = Query(None, ge=1, le=12, description="Month for monthly view"),
) -> PeriodSelection:
    return PeriodSelection(view=view, year=year, period=period, month=month)


def _period_dates(selection: PeriodSelection) -> tuple[date, date]:
    view, year = selection.view, selection.year
    if view is None or view == "custom" or year is None:
        raise BadRequestError(
            message="Provide start_date/end_date or a view of annual, quarterly or monthly with a year"
        )
    try:
        return resolve_period_range(view, year, selection.period, selection.month)
    except ValueError as exc:
        raise BadRequestError(message=str(exc)) from exc


def build_filters(
    start_date: date | None = Query(None, description="First day (inclusive)"),
    end_date: date | None = Query(None, description="Last day (inclusive)"),
    selection: PeriodSelection = Depends(select_period),
    brand: str | None = Query(None, description="Brand name or 'All Brands'"),
    channel: str | None = Query(None, description="Channel name or 'All Channels'"),
    sku: str | None = Query(None, description="SKU code"),
    group_by: GroupBy | None = Query(None, description="Trend or SKU grouping"),
) -> SalesFilters:
    """Build loader filters from query parameters.

    Explicit dates win; otherwise view/year/period/month resolve to the
    period's date range. With neither, the window is unbounded.
    """
    if start_date is None and end_date is None and selection.year is not None:
        start_date, end_date = _period_dates(selection)
    if start_date and end_date and end_date < start_date:
        raise BadRequestError(message="end_date must be greater than or equal to start_date")
    return SalesFilters(
        start_date=start_date,
        end_date=end_date,
        brand=brand,
        channel=channel,
        sku=sku,
        view=selection.view,
        group_by=group_by,
    )


# =============================================================================
# Sales
# =============================================================================


@router.get(
    "/records",
    response_model=list[SalesRecord],
    summary="Load daily sales rows",
)
async def get_sales_records(
    filters: SalesFilters = Depends(build_filters),
    service: DataService = Depends(get_data_service),
) -> list[SalesRecord]:
    """Load normalized daily sales rows for a filter set."""
    return await service.load_sales_data(filters)


@router.get(
    "/aggregate",
    response_model=AggregatedSales,
    summary="Load channel totals and revenue trend",
    description="""
Annual views, and quarterly views for one brand, are aggregated on the
server. Other requests load raw rows and aggregate them in the service.
The `source` field tells which path produced the result.
""",
)
async def get_aggregated_sales(
    filters: SalesFilters = Depends(build_filters),
    service: DataService = Depends(get_data_service),
) -> AggregatedSales:
    """Load aggregated sales for a filter set."""
    return await service.load_aggregated_sales_data(filters)


@router.post(
    "/records",
    response_model=SaveResponse,
    summary="Save sales rows (debounced)",
)
async def save_sales_records(
    request: SalesSaveRequest,
    service: DataService = Depends(get_data_service),
) -> SaveResponse:
    """Upsert sales rows; concurrent saves within the debounce window collapse."""
    return await service.save_sales_data(request.records)


@router.post(
    "/records/batch",
    response_model=BatchSaveSummary,
    status_code=status.HTTP_200_OK,
    summary="Save sales rows in batches",
)
async def batch_save_sales_records(
    request: BatchSaveRequest,
    service: DataService = Depends(get_data_service),
    actor: Actor = Depends(get_actor),
) -> BatchSaveSummary:
    """Write sales rows batch by batch; failed batches do not stop the rest."""
    return await service.batch_save_sales_data(
        request.records, batch_size=request.batch_size, actor=actor
    )


# =============================================================================
# SKU
# =============================================================================


@router.get(
    "/sku",
    response_model=list[SKURecord],
    summary="Load SKU rows",
)
async def get_sku_records(
    filters: SalesFilters = Depends(build_filters),
    service: DataService = Depends(get_data_service),
) -> list[SKURecord]:
    """Load SKU rows; `group_by` of sku, month or quarter aggregates on the server."""
    return await service.load_sku_data(filters)


@router.get(
    "/sku/comparison",
    response_model=SKUComparison,
    summary="Compare SKU performance between two periods",
    description="""
`mode=yoy` compares against the same period a year earlier, `mode=mom`
against the previous month (monthly view only), and `mode=custom` against
`compare_start_date`..`compare_end_date`.
""",
)
async def get_sku_comparison(
    filters: SalesFilters = Depends(build_filters),
    mode: Literal["yoy", "mom", "custom"] = Query("yoy", description="Comparison mode"),
    selection: PeriodSelection = Depends(select_period),
    compare_start_date: date | None = Query(None),
    compare_end_date: date | None = Query(None),
    service: DataService = Depends(get_data_service),
) -> SKUComparison:
    """Load current and comparison SKU data with growth figures."""
    current = filters if filters.group_by else filters.model_copy(update={"group_by": "sku"})

    if mode == "custom":
        if compare_start_date is None or compare_end_date is None:
            raise BadRequestError(
                message="Custom comparison needs compare_start_date and compare_end_date"
            )
        comp_start, comp_end = compare_start_date, compare_end_date
    else:
        view, year = selection.view, selection.year
        if view is None or view == "custom" or year is None:
            raise BadRequestError(
                message=f"{mode} comparison needs a view of annual, quarterly or monthly and a year"
            )
        try:
            comp_start, comp_end = comparison_range(
                mode, view, year, selection.period, selection.month
            )
        except ValueError as exc:
            raise BadRequestError(message=str(exc)) from exc

    if comp_end < comp_start:
        raise BadRequestError(message="Comparison end date is before its start date")

    comparison = current.model_copy(update={"start_date": comp_start, "end_date": comp_end})
    logger.info(
        "sales.sku_comparison_requested",
        mode=mode,
        current_start=current.start_date,
        comparison_start=comp_start,
    )
    return await service.load_sku_comparison(current, comparison)


@router.post(
    "/sku",
    response_model=SaveResponse,
    summary="Save SKU rows (debounced)",
)
async def save_sku_records(
    request: SKUSaveRequest,
    service: DataService = Depends(get_data_service),
) -> SaveResponse:
    """Upsert SKU rows; concurrent saves within the debounce window collapse."""
    return await service.save_sku_data(request.records)


@router.post(
    "/sku/batch",
    response_model=BatchSaveSummary,
    summary="Save SKU rows in batches",
)
async def batch_save_sku_records(
    request: BatchSaveRequest,
    service: DataService = Depends(get_data_service),
    actor: Actor = Depends(get_actor),
) -> BatchSaveSummary:
    """Write SKU rows batch by batch; failed batches do not stop the rest."""
    return await service.batch_save_sku_data(
        request.records, batch_size=request.batch_size, actor=actor
    )


# =============================================================================
# Cache
# =============================================================================


@router.delete(
    "/cache",
    response_model=CacheClearResponse,
    summary="Clear the loader cache",
)
async def clear_cache(
    key: str | None = Query(None, description="Exact key or key prefix to clear"),
    service: DataService = Depends(get_data_service),
) -> CacheClearResponse:
    """Clear all cache entries, or those matching a key prefix."""
    return CacheClearResponse(cleared=service.clear_cache(key), key=key)


@router.get(
    "/cache/stats",
    response_model=CacheStats,
    summary="Loader cache statistics",
)
async def get_cache_stats(
    service: DataService = Depends(get_data_service),
) -> CacheStats:
    """Return cache size, keys, estimated memory and hit counters."""
    return service.get_cache_stats()
