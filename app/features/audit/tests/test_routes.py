"""Tests for the audit trail API routes."""

import pytest
from httpx import AsyncClient


class TestAuditLogsEndpoint:
    """Tests for GET /audit-logs."""

    @pytest.mark.asyncio
    async def test_lists_entries(self, audit_client: AsyncClient):
        response = await audit_client.get("/audit-logs")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["logs"][0]["action_details"] == {"brand_name": "PetCove", "is_active": True}
        assert data["logs"][0]["user_email"] == "ops@example.com"

    @pytest.mark.asyncio
    async def test_filters_are_passed_through(self, audit_client: AsyncClient, mock_db):
        response = await audit_client.get(
            "/audit-logs",
            params={"action": "data_upload", "since": "2025-01-01T00:00:00Z", "limit": 5},
        )

        assert response.status_code == 200
        params = mock_db.execute.call_args.args[0].compile().params
        assert "data_upload" in params.values()
        assert 5 in params.values()

    @pytest.mark.asyncio
    async def test_unknown_action_is_rejected(self, audit_client: AsyncClient, mock_db):
        response = await audit_client.get("/audit-logs", params={"action": "login"})

        assert response.status_code == 422
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_limit_is_bounded(self, audit_client: AsyncClient):
        response = await audit_client.get("/audit-logs", params={"limit": 5000})

        assert response.status_code == 422


@pytest.mark.asyncio
async def test_target_history(audit_client: AsyncClient, mock_db, stored_history):
    mock_db.execute.return_value.scalars.return_value.all.return_value = stored_history

    response = await audit_client.get(
        "/audit-logs/target-history", params={"year": 2025, "brand": "LifePro"}
    )

    assert response.status_code == 200
    [row] = response.json()["history"]
    assert row["changed_by"] == "u-1"
    assert row["period"] == "Q1"
