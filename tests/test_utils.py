"""Tests for the money and date helpers."""

from datetime import date
from decimal import Decimal

import pytest

from transaction_linker.utils.date_utils import (
    days_between,
    parse_date,
    parse_timestamp_date,
    safe_parse_date,
)
from transaction_linker.utils.decimal_utils import (
    format_currency,
    parse_amount,
    parse_optional_amount,
    round_money,
    sum_amounts,
)


class TestParseAmount:
    """Tests for parse_amount."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1234.56", (Decimal("1234.56"), False)),
            ("-12.00", (Decimal("12.00"), True)),
            ("$1,234.56", (Decimal("1234.56"), False)),
            ("-$5.00", (Decimal("5.00"), True)),
            ("$-5.00", (Decimal("5.00"), True)),
            ("($1,234.56)", (Decimal("1234.56"), True)),
            (" +7 ", (Decimal("7"), False)),
            ("€12.00", (Decimal("12.00"), False)),
        ],
    )
    def test_formats(self, raw: str, expected: tuple[Decimal, bool]) -> None:
        """Test supported amount notations."""
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "1.2.3", "NaN", "Infinity"])
    def test_invalid(self, raw: str) -> None:
        """Test that non-amounts raise ValueError."""
        with pytest.raises(ValueError):
            parse_amount(raw)

    def test_optional_amount(self) -> None:
        """Test blank and "Not Applicable" cells."""
        assert parse_optional_amount(None) == Decimal("0")
        assert parse_optional_amount("Not Applicable") == Decimal("0")
        assert parse_optional_amount("-2.50") == Decimal("-2.50")
        with pytest.raises(ValueError):
            parse_optional_amount("free")


class TestMoneyHelpers:
    """Tests for rounding, summing and formatting."""

    def test_round_half_up(self) -> None:
        """Test half-up rounding to cents."""
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("2.674")) == Decimal("2.67")

    def test_sum_is_exact(self) -> None:
        """Test that many small line items do not drift."""
        assert sum_amounts([Decimal("0.10")] * 3) == Decimal("0.30")
        assert sum_amounts([Decimal("19.16"), Decimal("10.66")]) == Decimal("29.82")
        assert sum_amounts([]) == Decimal("0.00")

    def test_format_currency(self) -> None:
        """Test display formatting."""
        assert format_currency(Decimal("1234.5")) == "$1,234.50"
        assert format_currency(Decimal("-5")) == "-$5.00"


class TestDates:
    """Tests for the date helpers."""

    @pytest.mark.parametrize(
        "raw",
        ["2024-01-15", "2024/01/15", "01/15/2024", "1/15/24", "15.01.2024", "Jan 15, 2024", "20240115"],
    )
    def test_parse_date_formats(self, raw: str) -> None:
        """Test supported date notations."""
        assert parse_date(raw) == date(2024, 1, 15)

    def test_parse_date_invalid(self) -> None:
        """Test that unknown dates raise ValueError."""
        with pytest.raises(ValueError):
            parse_date("someday")
        with pytest.raises(ValueError):
            parse_date("  ")

    def test_timestamps(self) -> None:
        """Test UTC normalization of timestamps."""
        assert parse_timestamp_date("2024-01-15T10:30:00Z") == date(2024, 1, 15)
        assert parse_timestamp_date("2024-01-15T22:00:00-05:00") == date(2024, 1, 16)
        assert parse_date("2024-01-15 08:00:00") == date(2024, 1, 15)

    def test_safe_parse_date(self) -> None:
        """Test the fallback value."""
        fallback = date(2000, 1, 1)
        assert safe_parse_date("garbage", fallback) == fallback
        assert safe_parse_date(None) is None
        assert safe_parse_date("2024-01-15") == date(2024, 1, 15)

    def test_days_between(self) -> None:
        """Test that the gap is absolute."""
        assert days_between(date(2024, 3, 1), date(2024, 3, 11)) == 10
        assert days_between(date(2024, 3, 11), date(2024, 3, 1)) == 10
