"""Tests for the generic and Chase CSV parsers."""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from transaction_linker.parsers.base import ParseError
from transaction_linker.parsers.chase_parser import ChaseParser
from transaction_linker.parsers.csv_parser import CSVParser


class TestCSVParserFatalErrors:
    """Tests for document-level failures."""

    @pytest.mark.parametrize("content", ["", "   \n  \n"])
    def test_empty_content(self, content: str) -> None:
        """Test that empty content is a fatal error."""
        result = CSVParser().parse(content)
        assert result.success is False
        assert result.transactions == []
        assert result.errors == ["CSV file is empty"]

    def test_header_only(self) -> None:
        """Test that a header without rows is a fatal error."""
        result = CSVParser().parse("Date,Amount,Merchant\n")
        assert result.success is False
        assert result.errors == ["No transaction data found"]

    def test_missing_date_column(self) -> None:
        """Test that a missing date column is reported."""
        result = CSVParser().parse("Amount,Merchant\n5.00,Cafe\n")
        assert result.success is False
        assert result.errors == ["Missing required column: date"]

    def test_missing_amount_column(self) -> None:
        """Test that a missing amount source is reported."""
        result = CSVParser().parse("Date,Merchant\n2024-01-15,Cafe\n")
        assert result.success is False
        assert result.errors == ["Missing required column: amount"]


class TestCSVParserRows:
    """Tests for row parsing."""

    def test_basic_rows(self) -> None:
        """Test parsing aliases, currency symbols and thousands separators."""
        content = (
            "Transaction Date,Value,Payee,Memo\n"
            "01/15/2024,\"$1,234.56\",Hardware Store,Tools\n"
            "2024-01-16,4.50,Cafe,\"Coffee, large\"\n"
        )
        result = CSVParser().parse(content)
        assert result.success is True
        assert result.errors == []
        assert len(result.transactions) == 2

        first = result.transactions[0]
        assert first.date == date(2024, 1, 15)
        assert first.amount == Decimal("1234.56")
        assert first.merchant == "Hardware Store"
        assert first.description == "Tools"
        assert first.is_income is False

        assert result.transactions[1].description == "Coffee, large"

    def test_negative_amount_is_income(self) -> None:
        """Test that a negative amount is stored as an income magnitude."""
        result = CSVParser().parse("Date,Amount\n2024-01-15,-25.00\n")
        txn = result.transactions[0]
        assert txn.amount == Decimal("25.00")
        assert txn.is_income is True

    def test_merchant_defaults_to_unknown(self) -> None:
        """Test the merchant fallback."""
        result = CSVParser().parse("Date,Amount\n2024-01-15,3.00\n")
        assert result.transactions[0].merchant == "Unknown"

    def test_row_errors_are_numbered_and_skipped(self) -> None:
        """Test that bad rows are reported and parsing continues."""
        content = (
            "Date,Amount,Merchant\n"
            "2024-01-15,10.00,Good\n"
            "not-a-date,5.00,BadDate\n"
            "2024-01-17,abc,BadAmount\n"
            "2024-01-18,7.25,AlsoGood\n"
        )
        result = CSVParser().parse(content)
        assert result.success is True
        assert [t.merchant for t in result.transactions] == ["Good", "AlsoGood"]
        assert result.errors == [
            "Row 3: Invalid date format: not-a-date",
            "Row 4: Invalid amount: abc",
        ]

    def test_all_rows_invalid(self) -> None:
        """Test that success requires at least one parsed row."""
        result = CSVParser().parse("Date,Amount\nbad,1.00\n")
        assert result.success is False
        assert result.errors == ["Row 2: Invalid date format: bad"]

    def test_strict_mode_raises(self) -> None:
        """Test that strict mode raises on the first bad row."""
        with pytest.raises(ParseError, match="Row 2: Invalid amount: nope"):
            CSVParser(strict=True).parse("Date,Amount\n2024-01-15,nope\n")

    def test_inch_mark_keeps_following_rows(self) -> None:
        """Test that a stray quote mid-field does not swallow later rows."""
        content = (
            "Date,Amount,Merchant,Description\n"
            "2024-01-15,12.99,Pizzeria,12\" pizza\n"
            "2024-01-16,3.50,Cafe,latte\n"
            "2024-01-17,8.00,Deli,sandwich\n"
        )
        result = CSVParser().parse(content)
        assert result.errors == []
        assert len(result.transactions) == 3
        assert result.transactions[0].description == '12" pizza'

    def test_unterminated_quote_is_row_error(self) -> None:
        """Test that an unclosed quote fails only its own row."""
        content = (
            "Date,Amount,Merchant\n"
            "2024-01-15,10.00,\"Broken\n"
            "2024-01-16,4.00,Fine\n"
        )
        result = CSVParser().parse(content)
        assert [t.merchant for t in result.transactions] == ["Fine"]
        assert result.errors == ["Row 2: Unterminated quoted field"]

        with pytest.raises(ParseError, match="Row 2: Unterminated quoted field"):
            CSVParser(strict=True).parse(content)

    def test_debit_credit_columns(self) -> None:
        """Test bank statements with separate debit and credit columns."""
        content = (
            "Date,Description,Debit,Credit,Balance\n"
            "2024-01-15,Groceries,52.10,,900.00\n"
            "2024-01-16,Salary,,2000.00,2900.00\n"
            "2024-01-17,Nothing,,,2900.00\n"
        )
        result = CSVParser().parse(content)
        assert len(result.transactions) == 2
        groceries, salary = result.transactions
        assert groceries.amount == Decimal("52.10")
        assert groceries.is_income is False
        assert salary.amount == Decimal("2000.00")
        assert salary.is_income is True
        assert result.errors == ["Row 4: Invalid amount: "]

    def test_to_dict_export_record(self) -> None:
        """Test the export-boundary record."""
        result = CSVParser().parse("Date,Amount,Merchant,Notes\n2024-01-15,9.99,Shop,Gift\n")
        assert result.transactions[0].to_dict() == {
            "date": "2024-01-15",
            "amount": "9.99",
            "merchant": "Shop",
            "description": "Gift",
            "is_income": False,
        }

    def test_parse_file_missing(self, tmp_path: Path) -> None:
        """Test that a missing file raises ParseError."""
        with pytest.raises(ParseError, match="File not found"):
            CSVParser().parse_file(tmp_path / "missing.csv")

    def test_parse_file_with_bom(self, tmp_path: Path) -> None:
        """Test that a UTF-8 byte order mark does not break the header."""
        path = tmp_path / "export.csv"
        path.write_text("\ufeffDate,Amount\n2024-01-15,1.00\n", encoding="utf-8")
        result = CSVParser().parse_file(path)
        assert result.success is True


class TestChaseParser:
    """Tests for ChaseParser."""

    HEADER = "Transaction Date,Post Date,Description,Category,Type,Amount,Memo\n"

    def test_purchase_and_payment(self) -> None:
        """Test Chase sign conventions and category passthrough."""
        content = (
            self.HEADER
            + "01/15/2024,01/16/2024,AMAZON MKTPL*NM9QH43N0,Shopping,Sale,-29.82,\n"
            + "01/20/2024,01/20/2024,Payment Thank You,,Payment,500.00,\n"
        )
        result = ChaseParser().parse(content)
        assert result.success is True
        purchase, payment = result.transactions

        assert purchase.merchant == "AMAZON MKTPL*NM9QH43N0"
        assert purchase.description == "AMAZON MKTPL*NM9QH43N0"
        assert purchase.amount == Decimal("29.82")
        assert purchase.is_income is False
        assert purchase.category == "Shopping"

        assert payment.is_income is True

    def test_missing_required_columns(self) -> None:
        """Test that missing Chase columns are listed by name."""
        result = ChaseParser().parse("Date,Amount\n01/15/2024,5.00\n")
        assert result.success is False
        assert result.errors == [
            "Missing required column: Transaction Date",
            "Missing required column: Description",
        ]

    def test_blank_description_is_unknown(self) -> None:
        """Test the merchant fallback for blank descriptions."""
        result = ChaseParser().parse(self.HEADER + "01/15/2024,,,,Sale,-5.00,\n")
        assert result.transactions[0].merchant == "Unknown"

    def test_can_parse(self) -> None:
        """Test header recognition."""
        assert ChaseParser().can_parse(["Transaction Date", "Description", "Amount"]) is True
        assert ChaseParser().can_parse(["Date", "Description", "Amount"]) is False
