"""Fixtures for data platform integration tests.

Note: The db_session fixture is duplicated here because pytest fixtures are discovered
based on conftest.py files in the directory path. Tests in app/features/*/tests/ cannot
see fixtures in tests/conftest.py since it's not in their parent path.
"""

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.features.data_platform.models import (
    Brand,
    SalesData,
    SKUSalesData,
    Target,
    UserBrandPermission,
)

TEST_BRAND = "TEST-Brand"


@pytest.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over the migrated database; removes TEST-* rows afterwards.

    Requires PostgreSQL to be running (docker-compose up -d) and migrations applied.
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield maker

    async with maker() as cleanup_session:
        await cleanup_session.execute(delete(SalesData).where(SalesData.brand.like("TEST%")))
        await cleanup_session.execute(delete(SKUSalesData).where(SKUSalesData.brand.like("TEST%")))
        await cleanup_session.execute(delete(Target).where(Target.brand.like("TEST%")))
        await cleanup_session.execute(
            delete(UserBrandPermission).where(UserBrandPermission.brand.like("TEST%"))
        )
        await cleanup_session.execute(delete(Brand).where(Brand.name.like("TEST%")))
        await cleanup_session.commit()

    await engine.dispose()


@pytest.fixture
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Single session for constraint tests; rolled back after the test."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


def make_sale(day: date = date(2025, 1, 15), channel: str = "Amazon", **overrides) -> SalesData:
    values = {
        "date": day,
        "brand": TEST_BRAND,
        "channel": channel,
        "revenue": Decimal("100.00"),
        "source_id": f"test-{day.isoformat()}-{channel}",
    }
    values.update(overrides)
    return SalesData(**values)
