"""Tests for the sales data API routes."""

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.sales_data.tests.fakes import InMemoryDataStore, daily_sales
from app.main import app


@pytest.fixture
def seeded(store: InMemoryDataStore) -> InMemoryDataStore:
    store.add_rows(
        "sales_data",
        daily_sales(date(2025, 1, 1), 90, channels=("Amazon", "TikTok")),
    )
    store.add_rows(
        "sku_sales_data",
        [
            {"date": "2025-02-03", "brand": "LifePro", "channel": "Amazon", "sku": "LP-1", "units": 5, "revenue": 500.0},
            {"date": "2024-02-03", "brand": "LifePro", "channel": "Amazon", "sku": "LP-1", "units": 4, "revenue": 400.0},
            {"date": "2025-01-15", "brand": "LifePro", "channel": "Amazon", "sku": "LP-1", "units": 2, "revenue": 250.0},
        ],
    )
    return store


class TestSalesRecordsEndpoint:
    """Tests for GET /sales/records."""

    @pytest.mark.asyncio
    async def test_explicit_dates(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/records",
            params={"start_date": "2025-01-01", "end_date": "2025-01-07", "channel": "Amazon"},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 7
        assert {row["channel"] for row in data} == {"Amazon"}

    @pytest.mark.asyncio
    async def test_monthly_view_resolves_dates(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/records", params={"view": "monthly", "year": 2025, "month": 2}
        )

        assert response.status_code == 200
        dates = {row["date"] for row in response.json()}
        assert min(dates) == "2025-02-01"
        assert max(dates) == "2025-02-28"

    @pytest.mark.asyncio
    async def test_quarterly_view_needs_period(self, api_client: AsyncClient):
        response = await api_client.get(
            "/sales/records", params={"view": "quarterly", "year": 2025}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    @pytest.mark.asyncio
    async def test_end_before_start(self, api_client: AsyncClient):
        response = await api_client.get(
            "/sales/records", params={"start_date": "2025-02-01", "end_date": "2025-01-01"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_view(self, api_client: AsyncClient):
        response = await api_client.get("/sales/records", params={"view": "weekly", "year": 2025})

        assert response.status_code == 422


class TestAggregateEndpoint:
    """Tests for GET /sales/aggregate."""

    @pytest.mark.asyncio
    async def test_annual_view_uses_procedures(
        self, api_client: AsyncClient, seeded: InMemoryDataStore
    ):
        response = await api_client.get(
            "/sales/aggregate", params={"view": "annual", "year": 2025, "brand": "All Brands"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "aggregate"
        assert data["channel_revenues"] == {"Amazon": 9000.0, "TikTok": 9000.0}
        assert data["total_revenue"] == 18000.0
        assert set(seeded.ops("rpc")) == {"sales_channel_agg", "sales_agg"}

    @pytest.mark.asyncio
    async def test_monthly_view_aggregates_raw_rows(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/aggregate", params={"view": "monthly", "year": 2025, "month": 1}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "raw"
        assert data["total_revenue"] == 6200.0


class TestSaveEndpoints:
    """Tests for the save routes."""

    @pytest.mark.asyncio
    async def test_save_records(self, api_client: AsyncClient, store: InMemoryDataStore):
        response = await api_client.post(
            "/sales/records",
            json={
                "records": [
                    {"date": "2025-01-01", "brand": "LifePro", "channel": "Shopify", "revenue": "1,000"}
                ]
            },
        )

        assert response.status_code == 200
        assert response.json()["inserted_count"] == 1
        assert store.tables["sales_data"][0]["channel"] == "DTC-Shopify"
        assert store.tables["sales_data"][0]["revenue"] == 1000.0

    @pytest.mark.asyncio
    async def test_batch_save_records(self, api_client: AsyncClient, store: InMemoryDataStore):
        records = [
            {"date": f"2025-01-{day:02d}", "brand": "LifePro", "channel": "Amazon", "revenue": 10}
            for day in range(1, 6)
        ]

        response = await api_client.post(
            "/sales/records/batch", json={"records": records, "batch_size": 2}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] == 3
        assert data["failed"] == 0
        assert data["inserted"] == 5

    @pytest.mark.asyncio
    async def test_batch_save_reports_bad_rows(
        self, api_client: AsyncClient, store: InMemoryDataStore
    ):
        records = [
            {"date": f"2025-01-{day:02d}", "brand": "LifePro", "channel": "Amazon", "revenue": 10}
            for day in range(1, 5)
        ]
        records[2]["date"] = "01/03/2025"

        response = await api_client.post(
            "/sales/records/batch", json={"records": records, "batch_size": 2}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] == 1
        assert data["failed"] == 1
        assert data["failed_rows"] == 1
        assert data["inserted"] == 3
        assert data["errors"][0].startswith("Batch 2: Row 2 is invalid")
        assert store.count("sales_data") == 3

    @pytest.mark.asyncio
    async def test_invalid_date_is_rejected(self, api_client: AsyncClient, store):
        response = await api_client.post(
            "/sales/records",
            json={"records": [{"date": "01/02/2025", "brand": "LifePro", "channel": "Amazon"}]},
        )

        assert response.status_code == 422
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_save_sku_records(self, api_client: AsyncClient, store: InMemoryDataStore):
        response = await api_client.post(
            "/sales/sku",
            json={
                "records": [
                    {"date": "2025-01-01", "brand": "LifePro", "channel": "Amazon", "sku": "LP-1", "units": 2, "revenue": 20}
                ]
            },
        )

        assert response.status_code == 200
        assert store.count("sku_sales_data") == 1


class TestSkuEndpoints:
    """Tests for SKU loading and comparison routes."""

    @pytest.mark.asyncio
    async def test_sku_grouping(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/sku",
            params={"start_date": "2025-01-01", "end_date": "2025-03-31", "group_by": "sku"},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["revenue"] == 750.0
        assert data[0]["units"] == 7

    @pytest.mark.asyncio
    async def test_year_over_year(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/sku/comparison",
            params={"view": "monthly", "year": 2025, "month": 2, "mode": "yoy"},
        )

        assert response.status_code == 200
        merged = response.json()["merged"]
        assert merged[0]["comparison"]["growth_amount"] == 100.0
        assert merged[0]["comparison"]["growth_percent"] == 25.0

    @pytest.mark.asyncio
    async def test_month_over_month(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/sku/comparison",
            params={"view": "monthly", "year": 2025, "month": 2, "mode": "mom"},
        )

        assert response.status_code == 200
        detail = response.json()["merged"][0]["comparison"]
        assert detail["revenue"] == 250.0
        assert detail["growth_percent"] == 100.0

    @pytest.mark.asyncio
    async def test_month_over_month_needs_monthly_view(self, api_client: AsyncClient):
        response = await api_client.get(
            "/sales/sku/comparison",
            params={"view": "quarterly", "year": 2025, "period": "Q1", "mode": "mom"},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_custom_comparison(self, api_client: AsyncClient, seeded):
        response = await api_client.get(
            "/sales/sku/comparison",
            params={
                "start_date": "2025-02-01",
                "end_date": "2025-02-28",
                "mode": "custom",
                "compare_start_date": "2025-01-01",
                "compare_end_date": "2025-01-31",
            },
        )

        assert response.status_code == 200
        assert response.json()["merged"][0]["comparison"]["revenue"] == 250.0

    @pytest.mark.asyncio
    async def test_custom_comparison_needs_dates(self, api_client: AsyncClient):
        response = await api_client.get(
            "/sales/sku/comparison",
            params={"start_date": "2025-02-01", "end_date": "2025-02-28", "mode": "custom"},
        )

        assert response.status_code == 400


class TestCacheEndpoints:
    """Tests for cache management routes."""

    @pytest.mark.asyncio
    async def test_stats_and_clear(self, api_client: AsyncClient, seeded):
        await api_client.get(
            "/sales/records", params={"start_date": "2025-01-01", "end_date": "2025-01-07"}
        )

        stats = (await api_client.get("/sales/cache/stats")).json()
        assert stats["size"] == 1
        assert stats["keys"][0].startswith("sales|")
        assert stats["misses"] == 1

        response = await api_client.delete("/sales/cache", params={"key": "sales|"})
        assert response.json() == {"cleared": 1, "key": "sales|"}

        stats = (await api_client.get("/sales/cache/stats")).json()
        assert stats["size"] == 0


@pytest.mark.asyncio
async def test_service_unavailable_without_lifespan():
    app.dependency_overrides.clear()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/sales/cache/stats")

    assert response.status_code == 503
    assert response.json()["code"] == "SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_batch_upload_is_attributed_to_header_user(
    api_client: AsyncClient, store: InMemoryDataStore
):
    response = await api_client.post(
        "/sales/records/batch",
        json={"records": [{"date": "2025-01-01", "brand": "LifePro", "channel": "Amazon"}]},
        headers={"X-User-ID": "u-9", "X-User-Email": "ops@example.com", "X-User-Role": "admin"},
    )

    assert response.status_code == 200
    [entry] = store.tables["audit_logs"]
    assert (entry["user_id"], entry["user_email"], entry["user_role"]) == (
        "u-9",
        "ops@example.com",
        "admin",
    )
