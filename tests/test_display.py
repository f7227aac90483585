"""Tests for the presentation helpers."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from expense_ledger.display import (
    CATEGORY_STYLES,
    CategoryStyle,
    category_style,
    format_amount,
    format_time_ago,
)
from expense_ledger.models import ExpenseCategory


NOW = datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)


class TestCategoryStyle:
    """Tests for the static category table."""

    def test_every_category_has_a_style(self):
        """Test that the table covers the whole enum."""
        assert set(CATEGORY_STYLES) == set(ExpenseCategory)

    def test_lookup_by_string(self):
        """Test lookup by stored category string."""
        assert category_style("Food") == CategoryStyle("fastfood", "#FF9800")
        assert category_style(ExpenseCategory.TRAVEL).icon == "airplanemode_active"

    def test_unknown_category_draws_as_others(self):
        """Test the fallback for free-form categories."""
        assert category_style("Presents") == CATEGORY_STYLES[ExpenseCategory.OTHERS]
        assert category_style("food") == CATEGORY_STYLES[ExpenseCategory.OTHERS]


class TestFormatAmount:
    """Tests for currency formatting."""

    def test_two_decimals_and_separators(self):
        """Test thousands separators and fixed precision."""
        assert format_amount(Decimal("1234.5"), symbol="$") == "$1,234.50"
        assert format_amount(Decimal("4.50"), symbol="€") == "€4.50"

    def test_accepts_floats(self):
        """Test that floats format at display precision."""
        assert format_amount(6.5, symbol="$") == "$6.50"

    def test_symbol_from_settings(self, monkeypatch):
        """Test that the symbol defaults to the configured one."""
        from expense_ledger.config import get_settings

        monkeypatch.setenv("CURRENCY_SYMBOL", "£")
        get_settings.cache_clear()
        try:
            assert format_amount(Decimal("2")) == "£2.00"
        finally:
            get_settings.cache_clear()


class TestFormatTimeAgo:
    """Tests for relative timestamps."""

    @pytest.mark.parametrize("delta, expected", [
        (timedelta(seconds=30), "0m ago"),
        (timedelta(minutes=45), "45m ago"),
        (timedelta(hours=3, minutes=59), "3h ago"),
        (timedelta(hours=23, minutes=59), "23h ago"),
        (timedelta(days=1, hours=5), "Yesterday"),
        (timedelta(days=4), "4d ago"),
        (timedelta(days=400), "400d ago"),
    ])
    def test_buckets(self, delta, expected):
        """Test minute, hour, yesterday and day buckets."""
        assert format_time_ago(NOW - delta, now=NOW) == expected

    def test_future_timestamp(self):
        """Test that clock skew doesn't produce negative output."""
        assert format_time_ago(NOW + timedelta(hours=2), now=NOW) == "0m ago"

    def test_naive_datetimes_are_utc(self):
        """Test that naive datetimes are read as UTC."""
        naive_now = NOW.replace(tzinfo=None)
        assert format_time_ago(naive_now - timedelta(hours=2), now=naive_now) == "2h ago"
