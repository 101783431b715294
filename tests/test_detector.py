"""Tests for format detection and parser dispatch."""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from transaction_linker.parsers.base import ParseError
from transaction_linker.parsers.chase_parser import ChaseParser
from transaction_linker.parsers.csv_parser import CSVParser
from transaction_linker.parsers.detector import ImportDetector
from transaction_linker.parsers.format_detector import CSVFormat

AMAZON_HEADER = (
    "Website,Order ID,Order Date,Currency,Unit Price,Unit Price Tax,"
    "Shipping Charge,Total Discounts,Total Owed,Quantity,ASIN,"
    "Payment Instrument Type,Order Status,Shipment Status\n"
)


class TestImportDetector:
    """Tests for ImportDetector routing."""

    def test_amazon_export(self) -> None:
        """Test that order-history exports go to the Amazon parser."""
        content = (
            AMAZON_HEADER
            + "Amazon.com,111-A,2024-03-10T10:00:00Z,USD,17.74,1.42,0,0,19.16,1,B0AAA11111,Visa,Closed,Shipped\n"
            + "Amazon.com,111-A,2024-03-10T10:00:00Z,USD,9.87,0.79,0,0,10.66,1,B0BBB22222,Visa,Closed,Shipped\n"
            + "Amazon.com,111-B,2024-03-11T10:00:00Z,USD,5.00,0,0,0,5.00,1,B0CCC33333,Visa,Cancelled,Shipped\n"
        )
        result = ImportDetector().parse_content(content, aggregate_orders=True)

        assert result.format == CSVFormat.AMAZON
        assert result.parser_name == "AmazonExportParser"
        assert result.format_name == "Amazon Order History"
        assert result.success is True
        assert len(result.transactions) == 1
        assert result.total_amount == Decimal("29.82")
        assert result.skipped == 1

    def test_simple_amazon_order_csv(self) -> None:
        """Test that Amazon CSVs without the export columns use the simple parser."""
        content = (
            "order id,order date,price,ASIN,category\n"
            "111-1,2024-01-15,$19.99,B01,Home\n"
            "111-2,pending,$5.00,B02,Home\n"
        )
        result = ImportDetector().parse_content(content)

        assert result.format == CSVFormat.AMAZON
        assert result.parser_name == "AmazonParser"
        assert result.success is True
        assert [t.amount for t in result.transactions] == [Decimal("19.99"), Decimal("5.00")]
        assert result.transactions[1].date == date(2024, 1, 15)

    def test_chase_export(self) -> None:
        """Test that Chase exports go to the Chase parser."""
        content = (
            "Transaction Date,Post Date,Description,Category,Type,Amount,Memo\n"
            "01/15/2024,01/16/2024,AMAZON MKTPL*NM9QH43N0,Shopping,Sale,-29.82,\n"
        )
        result = ImportDetector().parse_content(content)
        assert result.format == CSVFormat.CHASE_CREDIT_CARD
        assert result.parser_name == "ChaseParser"
        assert result.transactions[0].amount == Decimal("29.82")
        assert result.transactions[0].is_income is False

    def test_chase_like_without_amount_falls_back(self) -> None:
        """Test that Chase-like headers missing Amount use the generic parser."""
        detector = ImportDetector()
        headers = ["Transaction Date", "Post Date", "Description", "Debit"]
        assert isinstance(detector.select_parser(CSVFormat.CHASE_CREDIT_CARD, headers), CSVParser)
        assert not isinstance(
            detector.select_parser(CSVFormat.CHASE_CREDIT_CARD, headers), ChaseParser
        )

    def test_generic_export(self) -> None:
        """Test that other layouts go to the generic parser."""
        result = ImportDetector().parse_content("Date,Amount,Payee\n2024-01-15,-4.00,Refund\n")
        assert result.format == CSVFormat.GENERIC
        assert result.parser_name == "CSVParser"
        assert result.transactions[0].is_income is True

    def test_strict_mode_propagates(self) -> None:
        """Test that strict mode reaches the row parsers."""
        with pytest.raises(ParseError):
            ImportDetector(strict=True).parse_content("Date,Amount\n2024-01-15,oops\n")

    def test_parse_file(self, tmp_path: Path) -> None:
        """Test reading from disk, including a missing file."""
        path = tmp_path / "bank.csv"
        path.write_text(
            "Date,Description,Debit,Credit,Balance\n2024-01-15,Rent,1200.00,,50.00\n",
            encoding="utf-8",
        )
        result = ImportDetector().parse_file(path)
        assert result.format == CSVFormat.BANK_STATEMENT
        assert result.transactions[0].amount == Decimal("1200.00")

        with pytest.raises(ParseError):
            ImportDetector().parse_file(tmp_path / "missing.csv")
