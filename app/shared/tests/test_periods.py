"""Tests for reporting period arithmetic."""

from datetime import date

import pytest

from app.shared.periods import (
    comparison_range,
    days_elapsed,
    days_in_period,
    resolve_period_range,
)


class TestResolvePeriodRange:
    """Tests for view/year/selector to date range."""

    def test_annual(self):
        assert resolve_period_range("annual", 2025) == (date(2025, 1, 1), date(2025, 12, 31))

    @pytest.mark.parametrize(
        ("period", "expected"),
        [
            ("Q1", (date(2025, 1, 1), date(2025, 3, 31))),
            ("q2", (date(2025, 4, 1), date(2025, 6, 30))),
            ("Q3", (date(2025, 7, 1), date(2025, 9, 30))),
            ("Q4", (date(2025, 10, 1), date(2025, 12, 31))),
        ],
    )
    def test_quarters(self, period, expected):
        assert resolve_period_range("quarterly", 2025, period=period) == expected

    def test_leap_february(self):
        assert resolve_period_range("monthly", 2024, month=2) == (date(2024, 2, 1), date(2024, 2, 29))

    @pytest.mark.parametrize(
        ("view", "kwargs"),
        [("quarterly", {}), ("quarterly", {"period": "Q5"}), ("monthly", {}), ("monthly", {"month": 13})],
    )
    def test_missing_or_invalid_selector(self, view, kwargs):
        with pytest.raises(ValueError):
            resolve_period_range(view, 2025, **kwargs)

    def test_unknown_view(self):
        with pytest.raises(ValueError, match="Unknown view"):
            resolve_period_range("weekly", 2025)  # type: ignore[arg-type]


class TestDayCounts:
    """Tests for period length and pacing days."""

    def test_days_in_period(self):
        assert days_in_period("annual", 2024) == 366
        assert days_in_period("quarterly", 2025, period="Q1") == 90
        assert days_in_period("monthly", 2025, month=1) == 31

    def test_days_elapsed_mid_period_counts_today(self):
        assert days_elapsed("monthly", 2025, month=1, today=date(2025, 1, 10)) == 10

    def test_days_elapsed_before_and_after(self):
        assert days_elapsed("monthly", 2025, month=3, today=date(2025, 2, 1)) == 0
        assert days_elapsed("monthly", 2025, month=3, today=date(2025, 4, 1)) == 31


class TestComparisonRange:
    """Tests for comparison period selection."""

    def test_year_over_year(self):
        assert comparison_range("yoy", "quarterly", 2025, period="Q2") == (
            date(2024, 4, 1),
            date(2024, 6, 30),
        )

    def test_month_over_month(self):
        assert comparison_range("mom", "monthly", 2025, month=3) == (date(2025, 2, 1), date(2025, 2, 28))

    def test_january_compares_with_previous_december(self):
        assert comparison_range("mom", "monthly", 2025, month=1) == (
            date(2024, 12, 1),
            date(2024, 12, 31),
        )

    def test_month_over_month_needs_monthly_view(self):
        with pytest.raises(ValueError, match="monthly view"):
            comparison_range("mom", "annual", 2025)
