"""Sales data loader: strategy selection, fallbacks, caching and writes.

``DataService`` is the single entry point the dashboard uses to read and
write sales data. Reads pick between server-side aggregation procedures and
raw row fetches, recover from truncated or empty results, and are cached
for a fixed TTL. Writes are debounced or batched and tolerate duplicate
keys and a missing upsert constraint.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    BadRequestError,
    ChaiVisionError,
    MissingConflictTargetError,
    PermissionDeniedError,
    RemoteTimeoutError,
    UniqueViolationError,
    ValidationError,
)
from app.core.logging import get_logger
from app.features.audit.schemas import Actor
from app.features.sales_data.cache import Clock, TTLCache
from app.features.sales_data.config import DataServiceConfig
from app.features.sales_data.debounce import Debouncer
from app.features.sales_data.policies import (
    build_source_id,
    coerce_day,
    coerce_revenue,
    create_cache_key,
    is_suspicious_limit,
    normalize_filter_value,
    should_use_aggregation,
)
from app.features.sales_data.schemas import (
    AggregatedSales,
    BatchProgress,
    BatchSaveSummary,
    CacheStats,
    SalesFilters,
    SalesRecord,
    SalesRowIn,
    SaveResponse,
    SKUComparison,
    SKUComparisonDetail,
    SKUComparisonRow,
    SKURecord,
    SKURowIn,
    TrendPoint,
)
from app.features.sales_data.store import DataStore, Predicate, RowQuery
from app.shared.channels import normalize_key

logger = get_logger(__name__)

T = TypeVar("T")

SALES_TABLE = "sales_data"
SKU_TABLE = "sku_sales_data"
PERMISSIONS_TABLE = "user_brand_permissions"
TARGETS_TABLE = "targets"
BRANDS_TABLE = "brands"
AUDIT_TABLE = "audit_logs"

SKU_AGGREGATE_GROUPINGS = ("sku", "month", "quarter")

# Cache key prefixes invalidated by writes to each table
CACHE_PREFIXES: dict[str, tuple[str, ...]] = {
    SALES_TABLE: ("sales|", "agg|"),
    SKU_TABLE: ("sku|",),
}

ProgressCallback = Callable[[BatchProgress], Awaitable[None] | None]


async def load_with_pagination(
    fetch_page: Callable[[int, int], Awaitable[list[T]]],
    page_size: int = 1000,
    max_pages: int = 500,
) -> list[T]:
    """Read every page of a result set with an offset cursor.

    Stops on the first page shorter than ``page_size``. Reaching
    ``max_pages`` logs a warning and returns the rows read so far.

    Args:
        fetch_page: Coroutine function taking (offset, limit).
        page_size: Rows requested per page.
        max_pages: Hard ceiling on pages read.

    Returns:
        Concatenated rows of every page read.
    """
    rows: list[T] = []
    offset = 0
    for _ in range(max_pages):
        page = await fetch_page(offset, page_size)
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size

    logger.warning(
        "sales.pagination_ceiling_reached",
        max_pages=max_pages,
        page_size=page_size,
        rows=len(rows),
    )
    return rows


def _first_error(exc: PydanticValidationError) -> str:
    """Short ``field: message`` text for the first validation error."""
    first = exc.errors(include_url=False)[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "row"
    return f"{field}: {first.get('msg', 'invalid value')}"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _period_start(day: str, group_by: str | None) -> str:
    if group_by not in ("month", "quarter"):
        return day
    parsed = date.fromisoformat(day)
    if group_by == "month":
        return parsed.replace(day=1).isoformat()
    first_month = 3 * ((parsed.month - 1) // 3) + 1
    return date(parsed.year, first_month, 1).isoformat()


def aggregate_records(
    records: Iterable[SalesRecord],
    group_by: str | None = None,
) -> AggregatedSales:
    """Aggregate raw daily rows into channel totals and a trend series.

    Args:
        records: Normalized daily rows.
        group_by: ``month`` or ``quarter`` to bucket the trend; daily otherwise.

    Returns:
        AggregatedSales with ``source="raw"``.
    """
    channel_revenues: dict[str, float] = defaultdict(float)
    buckets: dict[tuple[str, str, str], float] = defaultdict(float)
    for record in records:
        channel_revenues[record.channel] += record.revenue
        buckets[(_period_start(record.date, group_by), record.brand, record.channel)] += (
            record.revenue
        )

    trend = [
        TrendPoint(date=day, brand=brand, channel=channel, revenue=revenue)
        for (day, brand, channel), revenue in sorted(buckets.items())
    ]
    return AggregatedSales(
        total_revenue=sum(channel_revenues.values()),
        channel_revenues=dict(channel_revenues),
        trend_series=trend,
        source="raw",
    )


class DataService:
    """Data-access layer for dashboard sales data.

    Args:
        store: Managed store the loader reads from and writes to.
        config: Loader tunables; defaults to values from settings.
        clock: Monotonic clock for the cache; injectable for tests.
    """

    def __init__(
        self,
        store: DataStore,
        config: DataServiceConfig | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.store = store
        self.config = config or DataServiceConfig.from_settings()
        self.cache = TTLCache(self.config.cache_ttl_seconds, clock=clock)
        self._debouncer = Debouncer()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic cache sweep. Must run inside the event loop."""
        self.cache.start_sweeper(self.config.cache_sweep_interval_seconds)
        logger.info(
            "sales.service_started",
            cache_ttl_seconds=self.config.cache_ttl_seconds,
            sweep_interval_seconds=self.config.cache_sweep_interval_seconds,
        )

    async def aclose(self) -> None:
        """Stop the sweep and settle pending debounced writes."""
        await self.cache.stop_sweeper()
        await self._debouncer.close()
        logger.info("sales.service_stopped")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _timed(self, awaitable: Awaitable[T], operation: str, timeout: float) -> T:
        """Race a remote call against its deadline."""
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except TimeoutError as exc:
            logger.warning("sales.remote_timeout", operation=operation, timeout_seconds=timeout)
            raise RemoteTimeoutError(operation, timeout) from exc

    def _page_size(self) -> int:
        """Pagination page size, bounded by the store's own row cap."""
        return max(1, min(self.config.page_size, self.store.row_cap))

    def _normalize(self, value: Any) -> str | None:
        return normalize_filter_value(value, self.config.all_sentinels)

    def _as_filters(self, filters: SalesFilters | Mapping[str, Any] | None) -> SalesFilters:
        if filters is None:
            return SalesFilters()
        if isinstance(filters, SalesFilters):
            return filters
        try:
            return SalesFilters.model_validate(dict(filters))
        except PydanticValidationError as exc:
            raise ValidationError(
                message="Invalid sales filters", details={"errors": exc.errors()}
            ) from exc

    def _key(self, prefix: str, filters: SalesFilters) -> str:
        return create_cache_key(prefix, filters, self.config.all_sentinels)

    def _predicates(
        self,
        filters: SalesFilters,
        brand: str | None = None,
        channel: str | None = None,
        sku: str | None = None,
    ) -> tuple[Predicate, ...]:
        predicates: list[Predicate] = []
        if filters.start_date is not None:
            predicates.append(Predicate("date", "gte", filters.start_date.isoformat()))
        if filters.end_date is not None:
            predicates.append(Predicate("date", "lte", filters.end_date.isoformat()))
        if brand is not None:
            predicates.append(Predicate("brand", "ilike", _escape_like(brand)))
        if channel is not None:
            predicates.append(Predicate("channel", "ilike", _escape_like(channel)))
        if sku is not None:
            predicates.append(Predicate("sku", "ilike", _escape_like(sku)))
        return tuple(predicates)

    async def _select_all(
        self,
        table: str,
        predicates: tuple[Predicate, ...],
        filters: SalesFilters,
    ) -> list[dict[str, Any]]:
        """Select rows, re-reading with pagination when the result looks capped."""
        query = RowQuery(filters=predicates, order_by=("date", "id"))
        timeout = self.config.query_timeout_seconds
        rows = await self._timed(self.store.select(table, query), f"select:{table}", timeout)

        if is_suspicious_limit(
            len(rows),
            filters,
            row_cap=self.config.server_row_cap,
            window_cutoff_days=self.config.suspicious_window_days,
        ):
            logger.warning(
                "sales.pagination_fallback",
                table=table,
                row_count=len(rows),
                start_date=filters.start_date,
                end_date=filters.end_date,
            )

            async def fetch_page(offset: int, limit: int) -> list[dict[str, Any]]:
                page_query = replace(query, offset=offset, limit=limit)
                return await self._timed(
                    self.store.select(table, page_query), f"select:{table}", timeout
                )

            rows = await load_with_pagination(
                fetch_page,
                page_size=self._page_size(),
                max_pages=self.config.pagination_max_pages,
            )
        return rows

    async def _rpc_all(
        self,
        name: str,
        params: Mapping[str, Any],
        filters: SalesFilters,
    ) -> list[dict[str, Any]]:
        """Call an aggregation procedure, paginating when the result looks capped."""
        timeout = self.config.aggregate_timeout_seconds
        rows = await self._timed(self.store.rpc(name, params), f"rpc:{name}", timeout)

        if is_suspicious_limit(
            len(rows),
            filters,
            row_cap=self.config.server_row_cap,
            window_cutoff_days=self.config.suspicious_window_days,
        ):
            logger.warning("sales.pagination_fallback", procedure=name, row_count=len(rows))

            async def fetch_page(offset: int, limit: int) -> list[dict[str, Any]]:
                return await self._timed(
                    self.store.rpc(name, params, offset=offset, limit=limit),
                    f"rpc:{name}",
                    timeout,
                )

            rows = await load_with_pagination(
                fetch_page,
                page_size=self._page_size(),
                max_pages=self.config.pagination_max_pages,
            )
        return rows

    async def _fetch_raw_rows(self, table: str, filters: SalesFilters) -> list[dict[str, Any]]:
        """Raw row fetch with the empty-result fallback chain.

        A filtered query with no rows is retried without the brand, then with
        only the date range. Supplied brand, channel and SKU filters are then
        applied client-side on normalized keys.
        """
        brand = self._normalize(filters.brand)
        channel = self._normalize(filters.channel)
        sku = self._normalize(filters.sku) if table == SKU_TABLE else None

        rows = await self._select_all(
            table, self._predicates(filters, brand=brand, channel=channel, sku=sku), filters
        )
        if rows or (brand is None and channel is None and sku is None):
            return rows

        if brand is not None:
            logger.info("sales.empty_result_fallback", table=table, stage="without_brand")
            rows = await self._select_all(
                table, self._predicates(filters, channel=channel, sku=sku), filters
            )
        if not rows:
            logger.info("sales.empty_result_fallback", table=table, stage="dates_only")
            rows = await self._select_all(table, self._predicates(filters), filters)

        wanted = {
            column: normalize_key(value)
            for column, value in (("brand", brand), ("channel", channel), ("sku", sku))
            if value is not None
        }
        filtered = [
            row
            for row in rows
            if all(normalize_key(row.get(column)) == key for column, key in wanted.items())
        ]
        logger.info(
            "sales.client_filter_applied",
            table=table,
            fetched=len(rows),
            kept=len(filtered),
        )
        return filtered

    # -------------------------------------------------------------------------
    # Row normalization
    # -------------------------------------------------------------------------

    @staticmethod
    def _sales_record(row: Mapping[str, Any]) -> SalesRecord:
        return SalesRecord(
            date=coerce_day(row.get("date")),
            brand=str(row.get("brand") or ""),
            channel=str(row.get("channel") or ""),
            revenue=coerce_revenue(row.get("revenue")),
            source_id=row.get("source_id"),
        )

    @staticmethod
    def _sku_record(row: Mapping[str, Any]) -> SKURecord:
        if "total_revenue" in row:
            return SKURecord(
                date=coerce_day(row.get("period_date")),
                brand=str(row.get("brand") or ""),
                channel=str(row.get("channel") or ""),
                sku=str(row.get("sku") or ""),
                units=int(coerce_revenue(row.get("total_units"))),
                revenue=coerce_revenue(row.get("total_revenue")),
                record_count=int(row.get("record_count") or 0),
            )
        return SKURecord(
            date=coerce_day(row.get("date")),
            brand=str(row.get("brand") or ""),
            channel=str(row.get("channel") or ""),
            sku=str(row.get("sku") or ""),
            units=int(coerce_revenue(row.get("units"))),
            revenue=coerce_revenue(row.get("revenue")),
            product_name=row.get("product_name"),
            source_id=row.get("source_id"),
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def load_sales_data(
        self, filters: SalesFilters | Mapping[str, Any] | None = None
    ) -> list[SalesRecord]:
        """Load normalized daily sales rows.

        Args:
            filters: Date range, brand and channel filters.

        Returns:
            Rows with numeric revenue and ``YYYY-MM-DD`` dates.
        """
        parsed = self._as_filters(filters)

        async def fetch() -> list[SalesRecord]:
            rows = await self._fetch_raw_rows(SALES_TABLE, parsed)
            records = [self._sales_record(row) for row in rows]
            logger.info("sales.rows_loaded", rows=len(records), strategy="raw")
            return records

        return await self.cache.get_or_fetch(self._key("sales", parsed), fetch)

    async def load_aggregated_sales_data(
        self, filters: SalesFilters | Mapping[str, Any] | None = None
    ) -> AggregatedSales:
        """Load channel totals and the revenue trend for a filter set.

        Wide windows use the aggregation procedures; everything else loads
        raw rows and aggregates them here into the same shape.
        """
        parsed = self._as_filters(filters)

        async def fetch() -> AggregatedSales:
            if should_use_aggregation(parsed, self.config.all_sentinels):
                return await self._aggregate_on_server(parsed)
            records = await self.load_sales_data(parsed)
            return aggregate_records(records, parsed.group_by)

        return await self.cache.get_or_fetch(self._key("agg", parsed), fetch)

    async def _aggregate_on_server(self, filters: SalesFilters) -> AggregatedSales:
        brand = self._normalize(filters.brand)
        channel = self._normalize(filters.channel)
        if filters.start_date is None or filters.end_date is None:
            raise BadRequestError(message="Aggregation needs both start_date and end_date")
        base = {
            "start_date": filters.start_date.isoformat(),
            "end_date": filters.end_date.isoformat(),
            "brand_filter": brand,
        }
        group_by = {"day": "day", "date": "day", "quarter": "quarter"}.get(
            filters.group_by or "", "month"
        )

        channel_rows, trend_rows = await asyncio.gather(
            self._rpc_all("sales_channel_agg", base, filters),
            self._rpc_all(
                "sales_agg",
                {**base, "channel_filter": channel, "group_by": group_by},
                filters,
            ),
        )

        channel_key = normalize_key(channel) if channel is not None else None
        channel_revenues: dict[str, float] = {}
        for row in channel_rows:
            name = str(row.get("channel") or "")
            if channel_key is not None and normalize_key(name) != channel_key:
                continue
            channel_revenues[name] = channel_revenues.get(name, 0.0) + coerce_revenue(
                row.get("total_revenue")
            )

        trend = sorted(
            (
                TrendPoint(
                    date=coerce_day(row.get("period_date")),
                    brand=str(row.get("brand") or ""),
                    channel=str(row.get("channel") or ""),
                    revenue=coerce_revenue(row.get("revenue")),
                )
                for row in trend_rows
            ),
            key=lambda p: (p.date, p.brand, p.channel),
        )
        logger.info(
            "sales.rows_loaded",
            strategy="aggregate",
            channels=len(channel_revenues),
            trend_points=len(trend),
        )
        return AggregatedSales(
            total_revenue=sum(channel_revenues.values()),
            channel_revenues=channel_revenues,
            trend_series=trend,
            source="aggregate",
        )

    async def load_sku_data(
        self, filters: SalesFilters | Mapping[str, Any] | None = None
    ) -> list[SKURecord]:
        """Load SKU rows, grouped by the procedure when a grouping is requested.

        ``group_by`` of ``sku``, ``month`` or ``quarter`` (with both dates)
        calls ``sku_sales_agg``; otherwise raw daily SKU rows are read.
        """
        parsed = self._as_filters(filters)

        async def fetch() -> list[SKURecord]:
            if (
                parsed.group_by in SKU_AGGREGATE_GROUPINGS
                and parsed.start_date is not None
                and parsed.end_date is not None
            ):
                params = {
                    "start_date": parsed.start_date.isoformat(),
                    "end_date": parsed.end_date.isoformat(),
                    "channel_filter": self._normalize(parsed.channel),
                    "brand_filter": self._normalize(parsed.brand),
                    "sku_filter": self._normalize(parsed.sku),
                    "group_by": parsed.group_by,
                }
                rows = await self._rpc_all("sku_sales_agg", params, parsed)
                strategy = "aggregate"
            else:
                rows = await self._fetch_raw_rows(SKU_TABLE, parsed)
                strategy = "raw"
            records = [self._sku_record(row) for row in rows]
            logger.info("sales.sku_rows_loaded", rows=len(records), strategy=strategy)
            return records

        return await self.cache.get_or_fetch(self._key("sku", parsed), fetch)

    async def load_sku_comparison(
        self,
        current: SalesFilters | Mapping[str, Any],
        comparison: SalesFilters | Mapping[str, Any],
    ) -> SKUComparison:
        """Load two periods of SKU data and attach comparison figures.

        Both periods load concurrently. Comparison rows are summed per SKU
        (trimmed, case-insensitive) and matched against each current row.

        Args:
            current: Filters for the period being viewed.
            comparison: Filters for the period to compare against.

        Returns:
            Current rows, comparison rows and the merged view.
        """
        current_rows, comparison_rows = await asyncio.gather(
            self.load_sku_data(current),
            self.load_sku_data(comparison),
        )

        totals: dict[str, list[float]] = {}
        for row in comparison_rows:
            entry = totals.setdefault(row.sku.strip().upper(), [0.0, 0])
            entry[0] += row.revenue
            entry[1] += row.units

        merged: list[SKUComparisonRow] = []
        for row in current_rows:
            match = totals.get(row.sku.strip().upper())
            detail = None
            if match is not None:
                comp_revenue, comp_units = match
                growth = row.revenue - comp_revenue
                detail = SKUComparisonDetail(
                    revenue=comp_revenue,
                    units=int(comp_units),
                    growth_amount=round(growth, 2),
                    growth_percent=(
                        round(growth / comp_revenue * 100, 2) if comp_revenue != 0 else None
                    ),
                )
            merged.append(SKUComparisonRow(**row.model_dump(), comparison=detail))

        return SKUComparison(current=current_rows, comparison=comparison_rows, merged=merged)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def _prepare_row(table: str, row: SalesRowIn | SKURowIn | Mapping[str, Any]) -> dict[str, Any]:
        """Validate one row and assign its deterministic source id.

        Raises:
            pydantic.ValidationError: If the row does not validate.
        """
        model = SKURowIn if table == SKU_TABLE else SalesRowIn
        item = row if isinstance(row, model) else model.model_validate(row)
        payload = item.model_dump()
        if not payload.get("source_id"):
            parts = [payload["date"], payload["channel"], payload["brand"]]
            if table == SKU_TABLE:
                parts.append(payload["sku"])
            payload["source_id"] = build_source_id(*parts)
        return payload

    def _prepare(
        self,
        table: str,
        rows: Sequence[SalesRowIn | SKURowIn | Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        """Validate every row, failing the whole call on the first bad one."""
        prepared: list[dict[str, Any]] = []
        for index, row in enumerate(rows):
            try:
                prepared.append(self._prepare_row(table, row))
            except PydanticValidationError as exc:
                raise ValidationError(
                    message=f"Row {index} is invalid",
                    details={"row_index": index, "errors": exc.errors(include_url=False)},
                ) from exc
        return prepared

    async def _write_rows(self, table: str, rows: list[dict[str, Any]]) -> SaveResponse:
        """Upsert rows on source_id with the duplicate and missing-constraint fallbacks."""
        unique: dict[str, dict[str, Any]] = {}
        for row in rows:
            unique[row["source_id"]] = row
        collapsed = len(rows) - len(unique)
        batch = list(unique.values())
        timeout = self.config.write_timeout_seconds

        try:
            written = await self._timed(
                self.store.upsert(table, batch, on_conflict="source_id"),
                f"upsert:{table}",
                timeout,
            )
        except UniqueViolationError as exc:
            logger.warning(
                "sales.upsert_duplicate_fallback", table=table, rows=len(batch), error=exc.message
            )
            result = await self._write_rows_individually(table, batch)
        except MissingConflictTargetError as exc:
            logger.warning(
                "sales.upsert_conflict_target_missing",
                table=table,
                rows=len(batch),
                error=exc.message,
            )
            result = await self._write_select_then_branch(table, batch)
        else:
            result = SaveResponse(inserted_count=written, total_processed=len(batch))

        result.duplicate_count += collapsed
        result.total_processed = len(rows)
        return result

    async def _write_rows_individually(
        self, table: str, rows: list[dict[str, Any]]
    ) -> SaveResponse:
        result = SaveResponse(total_processed=len(rows))
        for row in rows:
            try:
                await self._timed(
                    self.store.upsert(table, [row], on_conflict="source_id"),
                    f"upsert:{table}",
                    self.config.write_timeout_seconds,
                )
            except UniqueViolationError:
                result.duplicate_count += 1
            else:
                result.inserted_count += 1
        return result

    async def _write_select_then_branch(
        self, table: str, rows: list[dict[str, Any]]
    ) -> SaveResponse:
        timeout = self.config.write_timeout_seconds
        chunk = self.config.server_row_cap
        source_ids = [row["source_id"] for row in rows]

        existing: set[str] = set()
        for start in range(0, len(source_ids), chunk):
            ids = source_ids[start : start + chunk]
            found = await self._timed(
                self.store.select(
                    table,
                    RowQuery(
                        columns=("source_id",),
                        filters=(Predicate("source_id", "in", ids),),
                        limit=len(ids),
                    ),
                ),
                f"select:{table}",
                self.config.query_timeout_seconds,
            )
            existing.update(str(row["source_id"]) for row in found)

        new_rows = [row for row in rows if row["source_id"] not in existing]
        result = SaveResponse(total_processed=len(rows))
        if new_rows:
            result.inserted_count = await self._timed(
                self.store.insert(table, new_rows), f"insert:{table}", timeout
            )
        for row in rows:
            if row["source_id"] not in existing:
                continue
            await self._timed(
                self.store.update(table, row, [Predicate("source_id", "eq", row["source_id"])]),
                f"update:{table}",
                timeout,
            )
            result.updated_count += 1
        return result

    def _invalidate(self, table: str) -> None:
        for prefix in CACHE_PREFIXES.get(table, ()):
            self.cache.clear(prefix)

    async def _save(self, table: str, rows: Sequence[Any]) -> SaveResponse:
        prepared = self._prepare(table, rows)
        if not prepared:
            return SaveResponse()

        async def write() -> SaveResponse:
            result = await self._write_rows(table, prepared)
            self._invalidate(table)
            logger.info(
                "sales.rows_saved",
                table=table,
                inserted=result.inserted_count,
                updated=result.updated_count,
                duplicates=result.duplicate_count,
            )
            return result

        return await self._debouncer.submit(
            f"save_{table}", write, self.config.save_debounce_seconds
        )

    async def save_sales_data(
        self, rows: Sequence[SalesRowIn | Mapping[str, Any]]
    ) -> SaveResponse:
        """Debounced save of sales rows; a later call within the window wins."""
        return await self._save(SALES_TABLE, rows)

    async def save_sku_data(self, rows: Sequence[SKURowIn | Mapping[str, Any]]) -> SaveResponse:
        """Debounced save of SKU rows; a later call within the window wins."""
        return await self._save(SKU_TABLE, rows)

    async def _batch_save(
        self,
        table: str,
        rows: Sequence[Any],
        batch_size: int | None,
        on_progress: ProgressCallback | None,
        actor: Actor | None = None,
    ) -> BatchSaveSummary:
        size = batch_size or self.config.batch_size
        if size < 1:
            raise BadRequestError(message="batch_size must be positive")

        upload_batch_id = uuid.uuid4().hex

        total_batches = (len(rows) + size - 1) // size
        summary = BatchSaveSummary()
        processed = 0

        for number, start in enumerate(range(0, len(rows), size), start=1):
            chunk = rows[start : start + size]
            batch_errors: list[str] = []
            batch: list[dict[str, Any]] = []
            for index, row in enumerate(chunk, start=start):
                try:
                    payload = self._prepare_row(table, row)
                    payload["upload_batch_id"] = upload_batch_id
                    batch.append(payload)
                except PydanticValidationError as exc:
                    batch_errors.append(f"Row {index} is invalid: {_first_error(exc)}")
            if batch_errors:
                summary.failed_rows += len(batch_errors)
                logger.warning(
                    "sales.batch_rows_invalid",
                    table=table,
                    batch_number=number,
                    invalid_rows=len(batch_errors),
                )

            if batch:
                try:
                    result = await self._write_rows(table, batch)
                except PermissionDeniedError:
                    raise
                except ChaiVisionError as exc:
                    batch_errors.append(exc.message)
                    summary.failed_rows += len(batch)
                    logger.error(
                        "sales.batch_failed",
                        table=table,
                        batch_number=number,
                        total_batches=total_batches,
                        rows=len(batch),
                        error=exc.message,
                        error_type=type(exc).__name__,
                    )
                else:
                    summary.inserted += result.inserted_count
                    summary.updated += result.updated_count
                    summary.duplicates += result.duplicate_count

            if batch_errors:
                summary.failed += 1
                summary.errors.extend(f"Batch {number}: {e}" for e in batch_errors)
            else:
                summary.success += 1

            processed += len(chunk)
            if on_progress is not None:
                outcome = on_progress(
                    BatchProgress(
                        batch_number=number,
                        total_batches=total_batches,
                        rows_processed=processed,
                        total_rows=len(rows),
                        succeeded=not batch_errors,
                        error="; ".join(batch_errors) or None,
                    )
                )
                if inspect.isawaitable(outcome):
                    await outcome

            if number < total_batches and self.config.batch_pause_seconds > 0:
                await asyncio.sleep(self.config.batch_pause_seconds)

        if summary.inserted or summary.updated or summary.duplicates:
            self._invalidate(table)
        logger.info(
            "sales.batch_save_completed",
            table=table,
            batches=total_batches,
            succeeded=summary.success,
            failed=summary.failed,
            inserted=summary.inserted,
            duplicates=summary.duplicates,
            upload_batch_id=upload_batch_id,
        )
        if rows:
            await self._record_upload(table, upload_batch_id, len(rows), summary, actor)
        return summary

    async def _record_upload(
        self,
        table: str,
        upload_batch_id: str,
        total: int,
        summary: BatchSaveSummary,
        actor: Actor | None,
    ) -> None:
        """Write the data_upload audit entry; a failure is logged, not raised."""
        actor = actor or Actor()
        entry = {
            "user_id": actor.user_id,
            "user_email": actor.user_email,
            "user_role": actor.user_role,
            "action": "data_upload",
            "action_details": {
                "table": table,
                "total_records": total,
                "accepted_records": total - summary.failed_rows,
                "rejected_records": summary.failed_rows,
                "batches": summary.success + summary.failed,
                "failed_batches": summary.failed,
            },
            "reference_id": upload_batch_id,
        }
        try:
            await self._timed(
                self.store.insert(AUDIT_TABLE, [entry]),
                f"insert:{AUDIT_TABLE}",
                self.config.write_timeout_seconds,
            )
        except ChaiVisionError as exc:
            logger.warning(
                "sales.audit_write_failed",
                table=table,
                upload_batch_id=upload_batch_id,
                error=exc.message,
                error_type=type(exc).__name__,
            )

    async def batch_save_sales_data(
        self,
        rows: Sequence[SalesRowIn | Mapping[str, Any]],
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
        actor: Actor | None = None,
    ) -> BatchSaveSummary:
        """Write sales rows in independent batches.

        A failed batch is recorded and the remaining batches still run. Rows
        that fail validation are counted in ``failed_rows`` and reported as
        ``Batch k: Row i is invalid: ...``; the other rows of their batch are
        still written, but the batch counts as failed. Every written row
        carries the upload's ``upload_batch_id``, and a data_upload audit
        entry with the accepted and rejected counts is recorded under it.

        Args:
            rows: Rows to write.
            batch_size: Rows per batch; defaults to the configured size.
            on_progress: Sync or async callback invoked after every batch.
            actor: User the upload is attributed to in the audit log.

        Returns:
            Batch and row counts, with the error messages of failed batches.

        Raises:
            PermissionDeniedError: If the store refuses the write.
        """
        return await self._batch_save(SALES_TABLE, rows, batch_size, on_progress, actor)

    async def batch_save_sku_data(
        self,
        rows: Sequence[SKURowIn | Mapping[str, Any]],
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
        actor: Actor | None = None,
    ) -> BatchSaveSummary:
        """Write SKU rows in independent batches (see batch_save_sales_data)."""
        return await self._batch_save(SKU_TABLE, rows, batch_size, on_progress, actor)

    # -------------------------------------------------------------------------
    # Brand deletion
    # -------------------------------------------------------------------------

    async def _purge_brand_rows(self, table: str, pattern: str, reassign_to: str | None) -> int:
        """Delete or reassign every row of ``table`` that references the brand."""
        size = self.config.delete_batch_size
        touched = 0
        while True:
            batch = await self._timed(
                self.store.select(
                    table,
                    RowQuery(
                        columns=("id",),
                        filters=(Predicate("brand", "ilike", pattern),),
                        order_by=("id",),
                        limit=size,
                    ),
                ),
                f"select:{table}",
                self.config.query_timeout_seconds,
            )
            if not batch:
                break
            ids = [row["id"] for row in batch]
            by_id = [Predicate("id", "in", ids)]
            if reassign_to is not None:
                changed = await self._timed(
                    self.store.update(table, {"brand": reassign_to}, by_id),
                    f"update:{table}",
                    self.config.write_timeout_seconds,
                )
            else:
                changed = await self._timed(
                    self.store.delete(table, by_id),
                    f"delete:{table}",
                    self.config.write_timeout_seconds,
                )
            touched += changed
            if changed == 0 or len(batch) < size:
                break
        return touched

    async def delete_brand(self, name: str, reassign_to: str | None = None) -> bool:
        """Remove a brand and everything that references it.

        Sales rows, SKU rows and brand permissions are deleted, or moved to
        ``reassign_to`` when given; targets and the brand row are deleted.

        Args:
            name: Brand name (matched case-insensitively).
            reassign_to: Brand that inherits the rows instead of deleting them.

        Returns:
            True if any row referenced the brand.

        Raises:
            BadRequestError: If the name is blank, a sentinel, or equals reassign_to.
        """
        brand = self._normalize(name)
        if brand is None:
            raise BadRequestError(message="A specific brand name is required")
        target = self._normalize(reassign_to)
        if target is not None and target.lower() == brand.lower():
            raise BadRequestError(message="Cannot reassign a brand to itself")

        pattern = _escape_like(brand)
        counts: dict[str, int] = {}
        for table in (SALES_TABLE, SKU_TABLE, PERMISSIONS_TABLE):
            counts[table] = await self._purge_brand_rows(table, pattern, target)

        timeout = self.config.write_timeout_seconds
        counts[TARGETS_TABLE] = await self._timed(
            self.store.delete(TARGETS_TABLE, [Predicate("brand", "ilike", pattern)]),
            f"delete:{TARGETS_TABLE}",
            timeout,
        )
        counts[BRANDS_TABLE] = await self._timed(
            self.store.delete(BRANDS_TABLE, [Predicate("name", "ilike", pattern)]),
            f"delete:{BRANDS_TABLE}",
            timeout,
        )
        self.clear_cache()

        logger.info(
            "sales.brand_deleted",
            brand=brand,
            reassigned_to=target,
            **{f"{table}_rows": count for table, count in counts.items()},
        )
        return any(counts.values())

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------

    def clear_cache(self, key: str | None = None) -> int:
        """Clear every cache entry, or those equal to or prefixed by ``key``."""
        removed = self.cache.clear(key)
        logger.info("sales.cache_cleared", key=key, removed=removed)
        return removed

    def get_cache_stats(self) -> CacheStats:
        """Current cache size, keys, estimated bytes and hit counters."""
        return CacheStats(
            size=len(self.cache),
            keys=self.cache.keys(),
            memory_usage=self.cache.memory_usage(),
            hits=self.cache.hits,
            misses=self.cache.misses,
        )
