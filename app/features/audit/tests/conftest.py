"""Fixtures for audit trail tests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.database import get_db
from app.features.data_platform.models import AuditLog, TargetHistory
from app.main import app

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def stored_logs() -> list[AuditLog]:
    entry = AuditLog(
        user_id="u-1",
        user_email="ops@example.com",
        user_role="admin",
        action="brand_created",
        action_details={"brand_name": "PetCove", "is_active": True},
        reference_id=None,
    )
    entry.id = 5
    entry.created_at = NOW
    return [entry]


@pytest.fixture
def stored_history() -> list[TargetHistory]:
    row = TargetHistory(
        year=2025,
        brand="LifePro",
        channel="Amazon",
        period="Q1",
        old_value=Decimal("80000.00"),
        new_value=Decimal("90000.00"),
        changed_by="u-1",
    )
    row.id = 2
    row.created_at = NOW
    return [row]


@pytest.fixture
def mock_db(stored_logs: list[AuditLog]) -> MagicMock:
    """Session whose selects return ``stored_logs``."""
    db = MagicMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = stored_logs
    db.execute = AsyncMock(return_value=result)
    return db


@pytest.fixture
async def audit_client(mock_db: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose routes use ``mock_db``."""
    app.dependency_overrides[get_db] = lambda: mock_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
