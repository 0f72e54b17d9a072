"""Integration tests for the SQLAlchemy data store against PostgreSQL.

These tests require a running PostgreSQL database with migrations applied.
Run with: pytest -m integration
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import MissingConflictTargetError
from app.features.data_platform.tests.conftest import TEST_BRAND
from app.features.sales_data.store import Predicate, RowQuery, SqlAlchemyDataStore

pytestmark = pytest.mark.integration


def rows(days: range, revenue: float = 10.0) -> list[dict]:
    return [
        {
            "date": f"2025-01-{day:02d}",
            "brand": TEST_BRAND,
            "channel": "Amazon",
            "revenue": revenue,
            "source_id": f"test-store-{day}",
        }
        for day in days
    ]


class TestSqlAlchemyDataStore:
    """Round trips through the real store."""

    async def test_upsert_is_idempotent(self, session_maker: async_sessionmaker[AsyncSession]):
        store = SqlAlchemyDataStore(session_maker)

        await store.upsert("sales_data", rows(range(1, 4)), on_conflict="source_id")
        await store.upsert("sales_data", rows(range(1, 4), revenue=20.0), on_conflict="source_id")

        found = await store.select(
            "sales_data", RowQuery(filters=(Predicate("brand", "ilike", "test-brand"),))
        )
        assert len(found) == 3
        assert {row["revenue"] for row in found} == {20.0}
        assert found[0]["date"] == "2025-01-01"

    async def test_select_honors_row_cap(self, session_maker: async_sessionmaker[AsyncSession]):
        store = SqlAlchemyDataStore(session_maker, row_cap=5)
        await store.upsert("sales_data", rows(range(1, 11)), on_conflict="source_id")

        page = await store.select(
            "sales_data",
            RowQuery(filters=(Predicate("brand", "eq", TEST_BRAND),), offset=5, limit=100),
        )

        assert [row["date"] for row in page] == [f"2025-01-{d:02d}" for d in range(6, 11)]

    async def test_upsert_without_unique_target(
        self, session_maker: async_sessionmaker[AsyncSession]
    ):
        store = SqlAlchemyDataStore(session_maker)

        with pytest.raises(MissingConflictTargetError):
            await store.upsert("sales_data", rows(range(1, 2)), on_conflict="brand")

    async def test_channel_aggregate(self, session_maker: async_sessionmaker[AsyncSession]):
        store = SqlAlchemyDataStore(session_maker)
        await store.upsert("sales_data", rows(range(1, 6)), on_conflict="source_id")

        result = await store.rpc(
            "sales_channel_agg",
            {"start_date": "2025-01-01", "end_date": "2025-01-31", "brand_filter": TEST_BRAND},
        )

        assert result == [{"channel": "Amazon", "total_revenue": 50.0, "record_count": 5}]

    async def test_monthly_trend(self, session_maker: async_sessionmaker[AsyncSession]):
        store = SqlAlchemyDataStore(session_maker)
        await store.upsert("sales_data", rows(range(1, 6)), on_conflict="source_id")

        result = await store.rpc(
            "sales_agg",
            {"start_date": "2025-01-01", "end_date": "2025-01-31", "brand_filter": TEST_BRAND},
        )

        assert result == [
            {"period_date": "2025-01-01", "brand": TEST_BRAND, "channel": "Amazon", "revenue": 50.0}
        ]

    async def test_delete_by_ids(self, session_maker: async_sessionmaker[AsyncSession]):
        store = SqlAlchemyDataStore(session_maker)
        await store.upsert("sales_data", rows(range(1, 4)), on_conflict="source_id")
        found = await store.select(
            "sales_data", RowQuery(columns=("id",), filters=(Predicate("brand", "eq", TEST_BRAND),))
        )

        removed = await store.delete("sales_data", [Predicate("id", "in", [r["id"] for r in found])])

        assert removed == 3
