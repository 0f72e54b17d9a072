"""Integration tests for database constraint enforcement.

These tests require a running PostgreSQL database with migrations applied.
Run with: pytest -m integration
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.data_platform.models import Brand, SKUSalesData, Target
from app.features.data_platform.tests.conftest import TEST_BRAND, make_sale


@pytest.mark.integration
class TestFactConstraints:
    """Integration tests for the fact tables."""

    async def test_duplicate_source_id_is_rejected(self, db_session: AsyncSession):
        db_session.add(make_sale())
        await db_session.commit()

        db_session.add(make_sale(revenue=Decimal("5.00")))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_negative_units_are_rejected(self, db_session: AsyncSession):
        db_session.add(
            SKUSalesData(
                date=date(2025, 1, 15),
                brand=TEST_BRAND,
                channel="Amazon",
                sku="TEST-1",
                units=-1,
                revenue=Decimal("1.00"),
                source_id="test-sku-negative",
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_negative_revenue_is_allowed(self, db_session: AsyncSession):
        """Refund-heavy days can net negative."""
        db_session.add(make_sale(revenue=Decimal("-25.00")))
        await db_session.commit()


@pytest.mark.integration
class TestReferenceConstraints:
    """Integration tests for brands and targets."""

    async def test_duplicate_brand_name_is_rejected(self, db_session: AsyncSession):
        db_session.add(Brand(name=TEST_BRAND))
        await db_session.commit()

        db_session.add(Brand(name=TEST_BRAND))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_target_grain_is_unique(self, db_session: AsyncSession):
        values = {"year": 2025, "brand": TEST_BRAND, "channel": "Amazon", "period": "Q1"}
        db_session.add(Target(**values, target=Decimal("100")))
        await db_session.commit()

        db_session.add(Target(**values, target=Decimal("200")))
        with pytest.raises(IntegrityError):
            await db_session.commit()

    async def test_negative_target_is_rejected(self, db_session: AsyncSession):
        db_session.add(
            Target(year=2025, brand=TEST_BRAND, channel="Amazon", period="Q2", target=Decimal("-1"))
        )
        with pytest.raises(IntegrityError):
            await db_session.commit()
