"""Tests for the Amazon order-history export parser."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from transaction_linker.parsers.amazon_export_parser import (
    AmazonExportParser,
    find_column,
    is_amazon_export_header,
)

HEADER = (
    "Website,Order ID,Order Date,Currency,Unit Price,Unit Price Tax,"
    "Shipping Charge,Total Discounts,Total Owed,Quantity,ASIN,"
    "Payment Instrument Type,Order Status,Shipment Status"
)


def export_row(
    order_id: str,
    total_owed: str,
    asin: str = "B000000001",
    order_date: str = "2024-01-15T10:30:00Z",
    quantity: str = "1",
    status: str = "Closed",
    unit_price: str = "10.00",
    unit_price_tax: str = "0.80",
) -> str:
    """Helper to build one export line."""
    return (
        f"Amazon.com,{order_id},{order_date},USD,{unit_price},{unit_price_tax},"
        f"0,0,{total_owed},{quantity},{asin},Visa - 1234,{status},Shipped"
    )


def export_csv(*rows: str) -> str:
    """Helper to build a full export document."""
    return "\n".join([HEADER, *rows]) + "\n"


class TestHeaderValidation:
    """Tests for export header recognition."""

    def test_valid_header(self) -> None:
        """Test that the full export header is accepted."""
        assert is_amazon_export_header(HEADER.split(",")) is True

    def test_exact_match_preferred_over_substring(self) -> None:
        """Test that "Unit Price" does not resolve to "Unit Price Tax"."""
        headers = ["Unit Price Tax", "Unit Price"]
        assert find_column(headers, "Unit Price") == 1
        assert find_column(headers, "unit price tax") == 0

    def test_invalid_header_is_fatal(self) -> None:
        """Test that a non-export header is a fatal error."""
        result = AmazonExportParser().parse("order id,order date,price\n1,2024-01-01,5\n")
        assert result.success is False
        assert result.transactions == []
        assert len(result.errors) == 1
        assert "Invalid Amazon export format" in result.errors[0]

    def test_empty_and_header_only(self) -> None:
        """Test empty content and a header without rows."""
        assert AmazonExportParser().parse("").errors == ["Empty CSV file"]
        header_only = AmazonExportParser().parse(HEADER + "\n")
        assert header_only.success is False
        assert header_only.errors == ["CSV file must contain header and at least one data row"]


class TestAggregateMode:
    """Tests for one-transaction-per-order parsing."""

    def test_two_items_sum_exactly(self) -> None:
        """Test that 19.16 + 10.66 gives exactly 29.82."""
        content = export_csv(
            export_row("111-2223334-5556667", "19.16", asin="B0AAA11111"),
            export_row("111-2223334-5556667", "10.66", asin="B0BBB22222"),
        )
        result = AmazonExportParser(aggregate_orders=True).parse(content)

        assert result.success is True
        assert len(result.transactions) == 1
        txn = result.transactions[0]
        assert txn.amount == Decimal("29.82")
        assert "2 items" in txn.description
        assert "Order: 111-2223334-5556667" in txn.description
        assert "ASINs: B0AAA11111, B0BBB22222" in txn.description
        assert txn.merchant == "Amazon"
        assert txn.is_income is False
        assert txn.order_id == "111-2223334-5556667"
        assert txn.date == date(2024, 1, 15)

        assert result.total_orders == 1
        assert result.total_amount == Decimal("29.82")
        assert result.skipped_orders == 0

    def test_single_item_description(self) -> None:
        """Test the description of a one-item order."""
        result = AmazonExportParser(aggregate_orders=True).parse(
            export_csv(export_row("111-1", "5.00", asin="B0SINGLE01"))
        )
        assert result.transactions[0].description == "Order: 111-1 | ASIN: B0SINGLE01"

    def test_more_than_five_items(self) -> None:
        """Test that only five ASINs are listed."""
        rows = [export_row("111-7", "1.00", asin=f"B00000000{i}") for i in range(7)]
        result = AmazonExportParser(aggregate_orders=True).parse(export_csv(*rows))
        description = result.transactions[0].description
        assert "7 items" in description
        assert "B000000004" in description
        assert "B000000005" not in description
        assert description.endswith("... and 2 more")

    def test_cancelled_and_zero_orders_are_skipped(self) -> None:
        """Test that cancelled and zero-total orders are skipped, not errors."""
        content = export_csv(
            export_row("111-A", "12.00"),
            export_row("111-B", "8.00", status="Cancelled"),
            export_row("111-C", "0.00"),
        )
        result = AmazonExportParser(aggregate_orders=True).parse(content)
        assert [t.order_id for t in result.transactions] == ["111-A"]
        assert result.skipped_orders == 2
        assert result.errors == []

    def test_missing_order_id_is_row_error(self) -> None:
        """Test that aggregation needs an order id on every row."""
        content = export_csv(export_row("", "5.00"), export_row("111-OK", "6.00"))
        result = AmazonExportParser(aggregate_orders=True).parse(content)
        assert len(result.transactions) == 1
        assert result.errors == ["Error parsing line 2: Missing Order ID"]


class TestLineItemMode:
    """Tests for one-transaction-per-row parsing."""

    def test_each_row_is_a_transaction(self) -> None:
        """Test line-item descriptions and quantities."""
        content = export_csv(
            export_row("111-X", "19.16", asin="B0AAA11111"),
            export_row("111-X", "10.66", asin="B0BBB22222", quantity="2"),
        )
        result = AmazonExportParser().parse(content)
        assert [t.amount for t in result.transactions] == [Decimal("19.16"), Decimal("10.66")]
        assert result.transactions[0].description == "Order: 111-X | ASIN: B0AAA11111"
        assert result.transactions[1].description == "Order: 111-X | ASIN: B0BBB22222 | Qty: 2"
        assert result.total_amount == Decimal("29.82")
        assert result.total_orders == 2

    def test_not_applicable_values_are_zero(self) -> None:
        """Test that "Not Applicable" numeric cells count as zero."""
        content = export_csv(
            export_row("111-N", "4.00", unit_price="Not Applicable", unit_price_tax="", quantity="")
        )
        result = AmazonExportParser().parse(content)
        assert result.errors == []
        assert result.transactions[0].amount == Decimal("4.00")
        assert "Qty" not in result.transactions[0].description

    def test_non_numeric_value_is_row_error(self) -> None:
        """Test that garbage in a numeric column fails just that row."""
        content = export_csv(export_row("111-G", "abc"), export_row("111-H", "3.00"))
        result = AmazonExportParser().parse(content)
        assert len(result.transactions) == 1
        assert result.errors == ["Error parsing line 2: Invalid Total Owed: abc"]

    def test_cancelled_row_is_skipped(self) -> None:
        """Test the skip policy in line-item mode."""
        content = export_csv(export_row("111-C", "9.00", status="Cancelled"))
        result = AmazonExportParser().parse(content)
        assert result.transactions == []
        assert result.skipped_orders == 1
        assert result.success is True

    def test_unparseable_date_falls_back_to_today_with_warning(self) -> None:
        """Test that a bad order date is replaced with today and flagged."""
        content = export_csv(export_row("111-D", "5.00", order_date="sometime"))
        with patch("transaction_linker.parsers.amazon_export_parser.logger") as mock_logger:
            result = AmazonExportParser().parse(content)

        assert result.transactions[0].date == date.today()
        assert len(result.warnings) == 1
        assert "sometime" in result.warnings[0]
        mock_logger.warning.assert_called_once()

    def test_timestamp_converted_to_utc_date(self) -> None:
        """Test that offset timestamps are normalized to the UTC date."""
        content = export_csv(export_row("111-T", "5.00", order_date="2024-01-15T23:30:00-05:00"))
        result = AmazonExportParser().parse(content)
        assert result.transactions[0].date == date(2024, 1, 16)


class TestRefunds:
    """Tests for negative Total Owed values."""

    def test_refund_row_is_income(self) -> None:
        """Test that a negative line total becomes a positive income amount."""
        content = export_csv(export_row("111-R", "-12.50"), export_row("111-S", "4.00"))
        result = AmazonExportParser().parse(content)

        refund = result.transactions[0]
        assert refund.amount == Decimal("12.50")
        assert refund.is_income is True
        assert result.transactions[1].is_income is False
        assert result.errors == []

    def test_refunded_order_is_income(self) -> None:
        """Test that an order whose items sum below zero is emitted as income."""
        content = export_csv(
            export_row("111-Q", "5.00", asin="B0AAA11111"),
            export_row("111-Q", "-8.25", asin="B0BBB22222"),
        )
        result = AmazonExportParser(aggregate_orders=True).parse(content)

        txn = result.transactions[0]
        assert txn.amount == Decimal("3.25")
        assert txn.is_income is True
        assert result.total_amount == Decimal("3.25")


class TestQuotedFields:
    """Tests for quoting problems inside the export."""

    def test_unterminated_quote_fails_only_its_line(self) -> None:
        """Test that a runaway quote does not swallow the following orders."""
        broken = export_row("111-U", "5.00", asin='"B0BROKEN')
        content = export_csv(broken, export_row("111-V", "6.00"), export_row("111-W", "7.00"))
        result = AmazonExportParser().parse(content)

        assert [t.order_id for t in result.transactions] == ["111-V", "111-W"]
        assert result.errors == ["Error parsing line 2: Unterminated quoted field"]
