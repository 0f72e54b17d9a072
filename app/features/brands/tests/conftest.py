"""Fixtures for brand service tests."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.features.data_platform.models import Brand

NOW = datetime(2025, 1, 1, tzinfo=UTC)


def make_brand(brand_id: int = 1, name: str = "LifePro", is_active: bool = True) -> Brand:
    brand = Brand(name=name, is_active=is_active)
    brand.id = brand_id
    brand.created_at = NOW
    brand.updated_at = NOW
    return brand


@pytest.fixture
def mock_db() -> MagicMock:
    """Session mock: no name clash, refresh fills server defaults."""
    db = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.get = AsyncMock(return_value=None)

    async def refresh(obj):
        obj.id = obj.id or 1
        obj.created_at = obj.created_at or NOW
        obj.updated_at = NOW

    db.refresh = AsyncMock(side_effect=refresh)
    return db


@pytest.fixture
def existing_brand() -> Brand:
    """Stored, active LifePro brand."""
    return make_brand()
