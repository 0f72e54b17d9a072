"""Server-side aggregation procedures.

Each procedure is a named SELECT over the fact tables, taking the same
parameters as the stored functions the dashboard calls. Filters compare
case-insensitively and a None filter means no filter.
"""

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from sqlalchemy import Date, Select, cast, func, literal, select
from sqlalchemy.sql.elements import ColumnElement

from app.features.data_platform.models import SalesData, SKUSalesData

SALES_GROUPINGS = ("day", "month", "quarter")
SKU_GROUPINGS = ("sku", "date", "month", "quarter")


def _as_date(value: Any, name: str) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    msg = f"Parameter {name!r} must be a date, got {value!r}"
    raise ValueError(msg)


def _period(column: Any, group_by: str) -> ColumnElement[Any]:
    if group_by in ("day", "date"):
        return column
    return cast(func.date_trunc(group_by, column), Date)


def _ci_equals(column: Any, value: str | None) -> ColumnElement[bool] | None:
    if value is None:
        return None
    return func.lower(column) == value.strip().lower()


def _filters(*conditions: ColumnElement[bool] | None) -> list[ColumnElement[bool]]:
    return [c for c in conditions if c is not None]


def sales_agg(params: Mapping[str, Any]) -> Select[Any]:
    """Revenue per period, brand and channel.

    Params: start_date, end_date, brand_filter, channel_filter, group_by
    (``day``, ``month`` or ``quarter``; default ``month``). Latest periods first.
    """
    group_by = params.get("group_by") or "month"
    if group_by not in SALES_GROUPINGS:
        msg = f"sales_agg group_by must be one of {SALES_GROUPINGS}, got {group_by!r}"
        raise ValueError(msg)

    period_date = _period(SalesData.date, group_by).label("period_date")
    start = _as_date(params.get("start_date"), "start_date")
    end = _as_date(params.get("end_date"), "end_date")

    return (
        select(
            period_date,
            SalesData.brand,
            SalesData.channel,
            func.sum(SalesData.revenue).label("revenue"),
        )
        .where(
            SalesData.date >= start,
            SalesData.date <= end,
            *_filters(
                _ci_equals(SalesData.brand, params.get("brand_filter")),
                _ci_equals(SalesData.channel, params.get("channel_filter")),
            ),
        )
        .group_by(period_date, SalesData.brand, SalesData.channel)
        .order_by(period_date.desc(), SalesData.brand, SalesData.channel)
    )


def sales_channel_agg(params: Mapping[str, Any]) -> Select[Any]:
    """Total revenue and row count per channel.

    Params: start_date, end_date, brand_filter.
    """
    start = _as_date(params.get("start_date"), "start_date")
    end = _as_date(params.get("end_date"), "end_date")
    total = func.sum(SalesData.revenue).label("total_revenue")

    return (
        select(
            SalesData.channel,
            total,
            func.count().label("record_count"),
        )
        .where(
            SalesData.date >= start,
            SalesData.date <= end,
            *_filters(_ci_equals(SalesData.brand, params.get("brand_filter"))),
        )
        .group_by(SalesData.channel)
        .order_by(total.desc(), SalesData.channel)
    )


def sku_sales_agg(params: Mapping[str, Any]) -> Select[Any]:
    """Units and revenue per SKU, channel and brand, optionally per period.

    Params: start_date, end_date, channel_filter, brand_filter, sku_filter,
    group_by (``sku``, ``date``, ``month`` or ``quarter``; default ``sku``).
    With ``sku`` grouping the whole window collapses onto ``start_date``.
    """
    group_by = params.get("group_by") or "sku"
    if group_by not in SKU_GROUPINGS:
        msg = f"sku_sales_agg group_by must be one of {SKU_GROUPINGS}, got {group_by!r}"
        raise ValueError(msg)

    start = _as_date(params.get("start_date"), "start_date")
    end = _as_date(params.get("end_date"), "end_date")
    if group_by == "sku":
        period_date: ColumnElement[Any] = literal(start, Date).label("period_date")
        group_cols: list[Any] = []
    else:
        period_date = _period(SKUSalesData.date, group_by).label("period_date")
        group_cols = [period_date]
    total_revenue = func.sum(SKUSalesData.revenue).label("total_revenue")

    return (
        select(
            period_date,
            SKUSalesData.sku,
            SKUSalesData.channel,
            SKUSalesData.brand,
            func.sum(SKUSalesData.units).label("total_units"),
            total_revenue,
            func.count().label("record_count"),
        )
        .where(
            SKUSalesData.date >= start,
            SKUSalesData.date <= end,
            *_filters(
                _ci_equals(SKUSalesData.channel, params.get("channel_filter")),
                _ci_equals(SKUSalesData.brand, params.get("brand_filter")),
                _ci_equals(SKUSalesData.sku, params.get("sku_filter")),
            ),
        )
        .group_by(*group_cols, SKUSalesData.sku, SKUSalesData.channel, SKUSalesData.brand)
        .order_by(*group_cols, total_revenue.desc(), SKUSalesData.sku, SKUSalesData.channel)
    )


PROCEDURES: dict[str, Callable[[Mapping[str, Any]], Select[Any]]] = {
    "sales_agg": sales_agg,
    "sales_channel_agg": sales_channel_agg,
    "sku_sales_agg": sku_sales_agg,
}
