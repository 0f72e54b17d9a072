"""Configuration dataclass for the sales data loader."""

from __future__ import annotations

from dataclasses import dataclass, field

from app.core.config import Settings, get_settings


@dataclass(frozen=True)
class DataServiceConfig:
    """Tunables for caching, pagination, write batching and deadlines.

    Attributes:
        cache_ttl_seconds: Lifetime of a cache entry from population.
        cache_sweep_interval_seconds: Period of the background expiry sweep.
        server_row_cap: Rows the store returns at most for one unranged query.
        page_size: Rows requested per page by the pagination fallback; never
            more than ``server_row_cap``.
        pagination_max_pages: Hard ceiling on pages read by one fallback.
        suspicious_window_days: Windows wider than this make a capped result suspect.
        save_debounce_seconds: Coalescing window for repeated saves.
        batch_size: Default rows per batch for bulk saves.
        batch_pause_seconds: Pause between batches to spare the store.
        delete_batch_size: Rows touched per round trip when deleting a brand.
        query_timeout_seconds: Deadline for row selects.
        aggregate_timeout_seconds: Deadline for aggregation procedures.
        write_timeout_seconds: Deadline for inserts, upserts, updates, deletes.
        all_sentinels: Lowercased filter values meaning "no filter".
    """

    cache_ttl_seconds: float = 300.0
    cache_sweep_interval_seconds: float = 60.0
    server_row_cap: int = 1000
    page_size: int = 1000
    pagination_max_pages: int = 500
    suspicious_window_days: int = 90
    save_debounce_seconds: float = 0.5
    batch_size: int = 1000
    batch_pause_seconds: float = 0.1
    delete_batch_size: int = 500
    query_timeout_seconds: float = 15.0
    aggregate_timeout_seconds: float = 30.0
    write_timeout_seconds: float = 60.0
    all_sentinels: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {"all", "all brands", "all brands (company total)", "all channels"}
        )
    )

    def __post_init__(self) -> None:
        # page_size never exceeds the server row cap
        if self.page_size > self.server_row_cap:
            object.__setattr__(self, "page_size", self.server_row_cap)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> DataServiceConfig:
        """Build the loader configuration from application settings."""
        settings = settings or get_settings()
        sentinels = {"all"}
        sentinels.update(s.strip().lower() for s in settings.all_brands_sentinels)
        sentinels.update(s.strip().lower() for s in settings.all_channels_sentinels)
        return cls(
            cache_ttl_seconds=settings.sales_cache_ttl_seconds,
            cache_sweep_interval_seconds=settings.sales_cache_sweep_interval_seconds,
            server_row_cap=settings.sales_server_row_cap,
            page_size=settings.sales_page_size,
            pagination_max_pages=settings.sales_pagination_max_pages,
            suspicious_window_days=settings.sales_suspicious_window_days,
            save_debounce_seconds=settings.sales_save_debounce_seconds,
            batch_size=settings.sales_batch_size,
            batch_pause_seconds=settings.sales_batch_pause_seconds,
            delete_batch_size=settings.sales_delete_batch_size,
            query_timeout_seconds=settings.sales_query_timeout_seconds,
            aggregate_timeout_seconds=settings.sales_aggregate_timeout_seconds,
            write_timeout_seconds=settings.sales_write_timeout_seconds,
            all_sentinels=frozenset(sentinels),
        )
