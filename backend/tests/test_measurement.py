"""
Unit tests for the Measurement Normalizer.

Tests cover:
- Plain decimal parsing and one-decimal rounding
- Feet-and-inches notation
- The zero-is-absence rule
- Malformed and negative input
"""

from decimal import Decimal

import pytest

from roomtally.services.measurement import (
    FEET_INCHES_PATTERN,
    MAX_LENGTH,
    parse_length,
    round_tenth,
)


# =============================================================================
# Plain Decimals
# =============================================================================


class TestPlainDecimals:
    """Test plain numeric input, as text or number."""

    def test_integer_string(self):
        assert parse_length("12") == Decimal("12.0")

    def test_decimal_string(self):
        assert parse_length("7.25") == Decimal("7.3")

    def test_surrounding_whitespace(self):
        assert parse_length("  9.5 ") == Decimal("9.5")

    def test_leading_dot(self):
        assert parse_length(".5") == Decimal("0.5")

    def test_int_value(self):
        assert parse_length(10) == Decimal("10.0")

    def test_float_value(self):
        assert parse_length(3.14159) == Decimal("3.1")

    def test_decimal_value(self):
        assert parse_length(Decimal("4.44")) == Decimal("4.4")

    def test_result_has_one_fractional_digit(self):
        assert parse_length("5").as_tuple().exponent == -1

    @pytest.mark.parametrize("raw,expected", [
        ("0.15", "0.2"),
        ("2.25", "2.3"),
        ("2.35", "2.4"),
        ("10.05", "10.1"),
        ("1.04", "1.0"),
    ])
    def test_round_half_away_from_zero(self, raw, expected):
        assert parse_length(raw) == Decimal(expected)

    def test_float_half_is_not_binary_rounded(self):
        """0.15 as a float must still round up."""
        assert parse_length(0.15) == Decimal("0.2")

    @pytest.mark.parametrize("x", [0.1, 1.26, 13.0, 99.99, 250.45, 999.9])
    def test_string_of_number_rounds_to_nearest_tenth(self, x):
        result = parse_length(str(x))
        assert abs(result - Decimal(str(x))) <= Decimal("0.05")


# =============================================================================
# Feet and Inches
# =============================================================================


class TestFeetAndInches:
    """Test feet-and-inches notation."""

    def test_symbols(self):
        assert parse_length("12'6\"") == Decimal("12.5")

    def test_symbols_with_space(self):
        assert parse_length("12' 6\"") == Decimal("12.5")

    def test_words(self):
        assert parse_length("12 feet 6 inches") == Decimal("12.5")

    def test_abbreviations(self):
        assert parse_length("12 ft 6 in") == Decimal("12.5")

    def test_unmarked_feet_with_hyphen(self):
        assert parse_length("12-6\"") == Decimal("12.5")

    def test_unmarked_feet_with_space(self):
        assert parse_length("12 6\"") == Decimal("12.5")

    def test_inches_rounded_after_adding(self):
        """7 inches is 0.583 ft; 10'7\" rounds to 10.6."""
        assert parse_length("10'7\"") == Decimal("10.6")

    def test_typographic_quotes(self):
        assert parse_length("9’3”") == Decimal("9.3")

    def test_feet_only(self):
        assert parse_length("14'") == Decimal("14.0")
        assert parse_length("14 ft") == Decimal("14.0")

    def test_inches_only(self):
        assert parse_length("30\"") == Decimal("2.5")
        assert parse_length("18 inches") == Decimal("1.5")

    def test_adjacent_digits_are_not_split(self):
        """126\" is 126 inches, not 12 feet 6 inches."""
        assert parse_length("126\"") == Decimal("10.5")

    def test_pattern_groups(self):
        match = FEET_INCHES_PATTERN.match("12'6\"")
        assert match.group("feet") == "12"
        assert match.group("inches") == "6"


# =============================================================================
# Zero Means Missing
# =============================================================================


class TestZeroIsAbsence:
    """A rounded zero is never stored."""

    @pytest.mark.parametrize("raw", ["0", "0.0", "0.04", 0, 0.0, Decimal("0.049"), "0'0\""])
    def test_zero_becomes_none(self, raw):
        assert parse_length(raw) is None

    def test_just_above_zero(self):
        assert parse_length("0.05") == Decimal("0.1")

    def test_round_tenth_zero(self):
        assert round_tenth(Decimal("0.01")) is None


# =============================================================================
# Malformed and Negative Input
# =============================================================================


class TestMalformedInput:
    """Malformed input yields None, never an exception."""

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "abc",
        "12 yards",
        "12m",
        "12'6",
        "1.2.3",
        "twelve",
        True,
        False,
        float("nan"),
        float("inf"),
        Decimal("NaN"),
        [],
        {},
    ])
    def test_returns_none(self, raw):
        assert parse_length(raw) is None

    @pytest.mark.parametrize("raw", ["-5", -5, -0.3, "-12'6\""])
    def test_negative_clamped_to_none(self, raw):
        assert parse_length(raw) is None

    def test_huge_float_returns_none(self):
        assert parse_length(1e300) is None


class TestMaximumLength:
    """Dimensions above MAX_LENGTH are rejected as implausible."""

    def test_at_maximum(self):
        assert parse_length(str(MAX_LENGTH)) == Decimal("100000.0")

    @pytest.mark.parametrize("raw", ["100000.1", "9" * 26, 10 ** 30, 1e25, Decimal("1E+27")])
    def test_above_maximum_returns_none(self, raw):
        assert parse_length(raw) is None

    def test_feet_inches_above_maximum(self):
        assert parse_length("100000' 6\"") is None
