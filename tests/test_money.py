"""
Tests for money parsing and rounding helpers.
"""

from decimal import Decimal

import pytest

from haven.core.money import percentage, round_half_up, safe_decimal, to_cents


class TestSafeDecimal:
    """Test the parse-or-zero boundary for monetary values."""

    @pytest.mark.parametrize("value,expected", [
        ("500.00", Decimal("500.00")),
        (" 12.5 ", Decimal("12.5")),
        (120, Decimal("120")),
        (0.1, Decimal("0.1")),
        (Decimal("80.25"), Decimal("80.25")),
        ("-45.10", Decimal("-45.10")),
    ])
    def test_parses_numbers(self, value, expected):
        assert safe_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "12,50", "NaN", "Infinity", True, Decimal("NaN")])
    def test_malformed_values_are_zero(self, value):
        assert safe_decimal(value) == Decimal("0")

    def test_malformed_value_does_not_raise(self):
        amounts = ["100.00", "not a number", "50.00"]
        assert sum((safe_decimal(a) for a in amounts), Decimal("0")) == Decimal("150.00")


class TestRounding:
    @pytest.mark.parametrize("value,expected", [
        (Decimal("14.5"), 15),
        (Decimal("14.4999"), 14),
        (Decimal("75"), 75),
        (Decimal("19.99"), 20),
        (Decimal("-2.5"), -3),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_to_cents(self):
        assert to_cents(Decimal("10.005")) == Decimal("10.01")
        assert to_cents(Decimal("3")) == Decimal("3.00")


class TestPercentage:
    def test_percentage(self):
        assert percentage(Decimal("6"), Decimal("8")) == Decimal("75")

    def test_zero_denominator(self):
        assert percentage(Decimal("3"), Decimal("0")) is None
