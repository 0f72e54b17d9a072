"""Fixtures for target service tests."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.features.data_platform.models import Target
from app.features.sales_data.schemas import AggregatedSales

NOW = datetime(2025, 1, 1, tzinfo=UTC)


def target_row(channel: str, period: str, amount: str, brand: str = "LifePro", id_: int = 1) -> Target:
    row = Target(year=2025, brand=brand, channel=channel, period=period, target=Decimal(amount))
    row.id = id_
    row.updated_at = NOW
    return row


@pytest.fixture
def stored_targets() -> list[Target]:
    """LifePro 2025 targets: Q1 per channel plus an annual figure."""
    return [
        target_row("Amazon", "Q1", "90000", id_=1),
        target_row("TikTok", "Q1", "9000", id_=2),
        target_row("Amazon", "annual", "400000", id_=3),
    ]


@pytest.fixture
def mock_db(stored_targets: list[Target]) -> MagicMock:
    """Session whose selects return ``stored_targets``."""
    db = MagicMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = stored_targets
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    return db


@pytest.fixture
def data_service() -> MagicMock:
    """DataService stand-in reporting January revenue per channel."""
    service = MagicMock()
    service.load_aggregated_sales_data = AsyncMock(
        return_value=AggregatedSales(
            total_revenue=17500.0,
            channel_revenues={"Amazon": 15500.0, "Wholesale": 2000.0},
        )
    )
    return service
