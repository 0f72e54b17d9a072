"""Tests for the loader's pure policy functions."""

import hashlib
from datetime import date, datetime

import pytest

from app.features.sales_data.policies import (
    build_source_id,
    coerce_day,
    coerce_revenue,
    create_cache_key,
    is_suspicious_limit,
    normalize_filter_value,
    should_use_aggregation,
    window_days,
)
from app.features.sales_data.schemas import SalesFilters


class TestNormalizeFilterValue:
    """Tests for sentinel and blank handling."""

    @pytest.mark.parametrize(
        "value",
        [None, "", "   ", "All Brands", "all brands", "All Brands (Company Total)", "ALL CHANNELS", "all"],
    )
    def test_sentinels_and_blanks_mean_no_filter(self, value):
        assert normalize_filter_value(value) is None

    def test_real_value_is_trimmed(self):
        assert normalize_filter_value("  LifePro ") == "LifePro"


class TestCreateCacheKey:
    """Tests for cache key determinism."""

    def test_identical_filters_give_identical_keys(self):
        a = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 3, 31), brand="LifePro")
        b = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 3, 31), brand="LifePro")

        assert create_cache_key("sales", a) == create_cache_key("sales", b)

    def test_sentinel_and_missing_brand_share_key(self):
        missing = SalesFilters(start_date=date(2025, 1, 1))
        sentinel = SalesFilters(start_date=date(2025, 1, 1), brand="All Brands")

        assert create_cache_key("sales", missing) == create_cache_key("sales", sentinel)
        assert "brand=all" in create_cache_key("sales", missing)

    @pytest.mark.parametrize(
        "changes",
        [
            {"start_date": date(2025, 1, 2)},
            {"end_date": date(2025, 2, 1)},
            {"brand": "PetCove"},
            {"channel": "Amazon"},
        ],
    )
    def test_any_core_field_change_changes_key(self, changes):
        base = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31), brand="LifePro")
        changed = base.model_copy(update=changes)

        assert create_cache_key("sales", base) != create_cache_key("sales", changed)

    def test_prefix_separates_operations(self):
        filters = SalesFilters()
        assert create_cache_key("sales", filters) != create_cache_key("agg", filters)

    def test_accepts_mapping(self):
        key = create_cache_key("sales", {"start_date": date(2025, 1, 1), "brand": "LifePro"})
        assert key.startswith("sales|start_date=2025-01-01|end_date=all|brand=LifePro")


class TestIsSuspiciousLimit:
    """Tests for the truncation heuristic."""

    def test_wide_window_at_cap_is_suspicious(self):
        filters = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 4, 30))
        assert is_suspicious_limit(1000, filters) is True

    def test_narrow_window_at_cap_is_trusted(self):
        filters = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
        assert is_suspicious_limit(1000, filters) is False

    def test_annual_view_is_always_wide(self):
        filters = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31), view="annual")
        assert is_suspicious_limit(1000, filters) is True

    def test_unbounded_window_counts_as_wide(self):
        assert is_suspicious_limit(1000, SalesFilters()) is True

    @pytest.mark.parametrize("row_count", [0, 999, 1001])
    def test_other_counts_are_trusted(self, row_count):
        filters = SalesFilters(start_date=date(2024, 1, 1), end_date=date(2025, 12, 31))
        assert is_suspicious_limit(row_count, filters) is False

    def test_thresholds_are_configurable(self):
        filters = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
        assert is_suspicious_limit(50, filters, row_cap=50, window_cutoff_days=7) is True

    def test_window_days_is_inclusive(self):
        assert window_days(date(2025, 1, 1), date(2025, 1, 1)) == 1
        assert window_days(date(2025, 1, 1), None) is None


class TestShouldUseAggregation:
    """Tests for strategy selection."""

    def test_annual_all_brands_aggregates(self):
        filters = SalesFilters(
            start_date=date(2025, 1, 1), end_date=date(2025, 12, 31), view="annual", brand="All Brands"
        )
        assert should_use_aggregation(filters) is True

    def test_quarterly_needs_a_brand(self):
        base = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 3, 31), view="quarterly")
        assert should_use_aggregation(base) is False
        assert should_use_aggregation(base.model_copy(update={"brand": "LifePro"})) is True

    def test_monthly_uses_raw_rows(self):
        filters = SalesFilters(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31), view="monthly")
        assert should_use_aggregation(filters) is False

    def test_missing_dates_use_raw_rows(self):
        assert should_use_aggregation(SalesFilters(view="annual")) is False


class TestCoercion:
    """Tests for boundary coercion of revenue and dates."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(12.5, 12.5), (3, 3.0), ("1,234.50", 1234.5), ("$99", 99.0), ("abc", 0.0), (None, 0.0), ("", 0.0)],
    )
    def test_coerce_revenue(self, value, expected):
        assert coerce_revenue(value) == expected

    def test_coerce_revenue_rejects_nan(self):
        assert coerce_revenue(float("nan")) == 0.0

    @pytest.mark.parametrize(
        "value",
        ["2025-03-04", "2025-03-04T10:11:12Z", "2025-03-04 08:00:00", date(2025, 3, 4), datetime(2025, 3, 4, 23, 59)],
    )
    def test_coerce_day(self, value):
        assert coerce_day(value) == "2025-03-04"

    def test_coerce_day_rejects_garbage(self):
        with pytest.raises(ValueError, match="Invalid date"):
            coerce_day("03/04/2025")


class TestBuildSourceId:
    """Tests for deterministic row ids."""

    def test_same_parts_same_id(self):
        assert build_source_id("2025-01-01", "Amazon", "LifePro") == build_source_id(
            "2025-01-01", " amazon ", "LIFEPRO"
        )

    def test_different_parts_different_id(self):
        assert build_source_id("2025-01-01", "Amazon", "LifePro") != build_source_id(
            "2025-01-02", "Amazon", "LifePro"
        )

    def test_is_sha256_hex_digest(self):
        expected = hashlib.sha256(b"2025-01-01|amazon|lifepro").hexdigest()

        assert build_source_id("2025-01-01", "Amazon", "LifePro") == expected
        assert len(expected) == 64
