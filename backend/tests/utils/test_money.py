# backend/tests/utils/test_money.py
"""
Tests for the money and quantity primitives.
"""

from decimal import Decimal

import pytest

from portfolio_tracker.models import AssetCategory
from portfolio_tracker.utils.money import (
    floor_shares,
    is_close,
    normalize_quantity,
    percentage,
    quantize_money,
    quantize_percent,
    quantize_quantity,
    safe_divide,
    to_decimal,
)


class TestToDecimal:
    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_passthrough_and_strings(self):
        value = Decimal("12.5")
        assert to_decimal(value) is value
        assert to_decimal("3.14") == Decimal("3.14")
        assert to_decimal(7) == Decimal("7")

    def test_none_uses_default(self):
        assert to_decimal(None) is None
        assert to_decimal(None, default=Decimal("0")) == Decimal("0")

    @pytest.mark.parametrize("value", ["abc", "NaN", float("inf")])
    def test_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)


class TestQuantityPolicy:
    @pytest.mark.parametrize("value,expected", [
        ("10.7", "10"),
        ("10", "10"),
        ("0.99", "0"),
        ("-1.5", "-2"),
    ])
    def test_floor_shares(self, value, expected):
        assert floor_shares(Decimal(value)) == Decimal(expected)

    def test_equities_floored(self):
        assert normalize_quantity(AssetCategory.LOCAL_EQUITY, Decimal("3.9")) == Decimal("3")
        assert normalize_quantity(AssetCategory.FOREIGN_EQUITY, Decimal("3.9")) == Decimal("3")

    def test_metals_keep_fractions(self):
        assert normalize_quantity(AssetCategory.PRECIOUS_METAL, Decimal("3.9")) == Decimal("3.9")


class TestArithmetic:
    def test_safe_divide(self):
        assert safe_divide(Decimal("10"), Decimal("4")) == Decimal("2.5")
        assert safe_divide(Decimal("10"), Decimal("0")) == Decimal("0")

    def test_percentage(self):
        assert percentage(Decimal("25"), Decimal("200")) == Decimal("12.5")
        assert percentage(Decimal("25"), Decimal("0")) == Decimal("0")

    def test_is_close(self):
        assert is_close(Decimal("100.00"), Decimal("100.01"))
        assert not is_close(Decimal("100.00"), Decimal("100.02"))


class TestQuantize:
    def test_money_rounds_half_up(self):
        assert quantize_money(Decimal("1.005")) == Decimal("1.01")
        assert str(quantize_money(Decimal("3"))) == "3.00"

    def test_percent(self):
        assert quantize_percent(Decimal("33.33333")) == Decimal("33.33")

    def test_quantity(self):
        assert str(quantize_quantity(Decimal("0.123456789"))) == "0.12345679"
