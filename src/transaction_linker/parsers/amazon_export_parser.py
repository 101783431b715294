"""Parser for Amazon's order-history data export (Retail.OrderHistory.1.csv).

The export has one row per item. "Total Owed" already includes that item's
tax and its share of shipping and discounts, so order totals are plain sums
of it. A negative total is a refund and is emitted as income.
Order dates are ISO-8601 timestamps such as 2024-01-15T10:30:00Z.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from transaction_linker.models.transaction import ParsedTransaction
from transaction_linker.parsers.csv_reader import read_rows
from transaction_linker.utils.date_utils import safe_parse_date
from transaction_linker.utils.decimal_utils import (
    parse_optional_amount,
    round_money,
    sum_amounts,
)
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)

MERCHANT_NAME = "Amazon"
CANCELLED_STATUS = "cancelled"
MAX_LISTED_ASINS = 5

REQUIRED_COLUMNS = (
    "Order ID",
    "Order Date",
    "Unit Price",
    "Unit Price Tax",
    "Total Owed",
    "ASIN",
    "Order Status",
)
OPTIONAL_COLUMNS = (
    "Shipping Charge",
    "Total Discounts",
    "Quantity",
    "Payment Instrument Type",
    "Shipment Status",
)


@dataclass
class AmazonOrderLine:
    """One item row of the export."""

    row_number: int
    order_id: str
    order_date: str
    unit_price: Decimal
    unit_price_tax: Decimal
    shipping_charge: Decimal
    total_discounts: Decimal
    total_owed: Decimal
    asin: str
    quantity: int
    payment_instrument_type: str
    order_status: str
    shipment_status: str

    @property
    def is_cancelled(self) -> bool:
        return self.order_status.strip().lower() == CANCELLED_STATUS


@dataclass
class AmazonOrder:
    """Item rows that share an Order ID."""

    order_id: str
    order_date: str
    row_number: int
    order_status: str
    payment_method: str = ""
    shipment_status: str = ""
    items: list[AmazonOrderLine] = field(default_factory=list)

    @property
    def total_owed(self) -> Decimal:
        return sum_amounts(item.total_owed for item in self.items)

    @property
    def is_cancelled(self) -> bool:
        return self.order_status.strip().lower() == CANCELLED_STATUS


@dataclass
class AmazonExportResult:
    """Outcome of parsing an Amazon export.

    Attributes:
        success: False only when the document itself is unusable.
        transactions: Emitted transactions.
        errors: Fatal error or per-line errors.
        warnings: Non-fatal issues such as order dates replaced with today.
        total_orders: Number of emitted transactions.
        total_amount: Sum of emitted amounts.
        skipped_orders: Cancelled or zero-total rows/orders.
    """

    success: bool
    transactions: list[ParsedTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total_orders: int = 0
    total_amount: Decimal = Decimal("0.00")
    skipped_orders: int = 0

    @classmethod
    def fatal(cls, error: str) -> "AmazonExportResult":
        return cls(success=False, errors=[error])


def find_column(headers: list[str], name: str) -> Optional[int]:
    """Find a column by name, case-insensitively.

    An exact header match wins over a substring match, so "Unit Price" does
    not resolve to "Unit Price Tax".

    Args:
        headers: Header row fields.
        name: Column name to look for.

    Returns:
        Column index, or None if no header matches.
    """
    wanted = name.lower()
    normalized = [h.strip().lower() for h in headers]
    for index, header in enumerate(normalized):
        if header == wanted:
            return index
    for index, header in enumerate(normalized):
        if wanted in header:
            return index
    return None


def is_amazon_export_header(headers: list[str]) -> bool:
    """Check whether a header row is the order-history export layout."""
    return all(find_column(headers, col) is not None for col in REQUIRED_COLUMNS)


class AmazonExportParser:
    """Parser for Amazon order-history exports.

    In line-item mode (the default) every item row becomes a transaction,
    which allows per-item categorization. In aggregate mode item rows are
    summed into one transaction per order, matching what the card was
    actually charged.
    """

    def __init__(self, aggregate_orders: bool = False):
        """Initialize the parser.

        Args:
            aggregate_orders: Combine item rows into order totals.
        """
        self.aggregate_orders = aggregate_orders

    def parse(self, content: str) -> AmazonExportResult:
        """Parse export CSV text.

        Args:
            content: Raw CSV text.

        Returns:
            AmazonExportResult with transactions, errors and statistics.
        """
        if not content or not content.strip():
            return AmazonExportResult.fatal("Empty CSV file")

        split = read_rows(content)
        rows = split.rows
        if len(rows) < 2:
            return AmazonExportResult.fatal(
                "CSV file must contain header and at least one data row"
            )

        headers = [h.strip() for h in rows[0][1]]
        if not is_amazon_export_header(headers):
            return AmazonExportResult.fatal(
                "Invalid Amazon export format. Expected Retail.OrderHistory.1.csv format"
            )

        columns = {
            name: find_column(headers, name)
            for name in REQUIRED_COLUMNS + OPTIONAL_COLUMNS
        }

        result = AmazonExportResult(success=True)
        lines: list[AmazonOrderLine] = []
        split_issues = dict(split.issues)
        for row_number, values in rows[1:]:
            if row_number in split_issues:
                result.errors.append(
                    f"Error parsing line {row_number}: {split_issues[row_number]}"
                )
                continue
            try:
                lines.append(self._parse_line(row_number, values, columns))
            except ValueError as e:
                result.errors.append(f"Error parsing line {row_number}: {e}")

        if self.aggregate_orders:
            self._emit_orders(lines, result)
        else:
            self._emit_line_items(lines, result)

        result.total_orders = len(result.transactions)
        result.total_amount = sum_amounts(txn.amount for txn in result.transactions)

        logger.info(
            f"Amazon export: {result.total_orders} transactions, "
            f"{result.skipped_orders} skipped, {len(result.errors)} line errors"
        )
        return result

    def _parse_line(
        self,
        row_number: int,
        values: list[str],
        columns: dict[str, Optional[int]],
    ) -> AmazonOrderLine:
        """Extract one item row.

        Raises:
            ValueError: If a numeric cell holds something other than a number,
                or an aggregated row has no Order ID.
        """

        def get(name: str) -> str:
            idx = columns.get(name)
            if idx is None or idx >= len(values):
                return ""
            return values[idx].strip()

        def number(name: str) -> Decimal:
            raw = get(name)
            try:
                return parse_optional_amount(raw)
            except ValueError:
                raise ValueError(f"Invalid {name}: {raw}") from None

        order_id = get("Order ID")
        if self.aggregate_orders and not order_id:
            raise ValueError("Missing Order ID")

        quantity = int(number("Quantity")) or 1

        return AmazonOrderLine(
            row_number=row_number,
            order_id=order_id,
            order_date=get("Order Date"),
            unit_price=number("Unit Price"),
            unit_price_tax=number("Unit Price Tax"),
            shipping_charge=number("Shipping Charge"),
            total_discounts=number("Total Discounts"),
            total_owed=number("Total Owed"),
            asin=get("ASIN"),
            quantity=quantity,
            payment_instrument_type=get("Payment Instrument Type"),
            order_status=get("Order Status"),
            shipment_status=get("Shipment Status"),
        )

    def _emit_orders(self, lines: list[AmazonOrderLine], result: AmazonExportResult) -> None:
        for order in group_lines_by_order(lines):
            if order.is_cancelled or order.total_owed == 0:
                logger.debug(f"Skipping order {order.order_id} ({order.order_status or 'zero total'})")
                result.skipped_orders += 1
                continue

            result.transactions.append(
                ParsedTransaction(
                    date=self._order_date(order.order_date, order.row_number, order.order_id, result),
                    amount=round_money(abs(order.total_owed)),
                    merchant=MERCHANT_NAME,
                    description=build_order_description(order),
                    is_income=order.total_owed < 0,
                    order_id=order.order_id,
                )
            )

    def _emit_line_items(self, lines: list[AmazonOrderLine], result: AmazonExportResult) -> None:
        for line in lines:
            if line.is_cancelled or line.total_owed == 0:
                result.skipped_orders += 1
                continue

            description = f"Order: {line.order_id} | ASIN: {line.asin}"
            if line.quantity > 1:
                description += f" | Qty: {line.quantity}"

            result.transactions.append(
                ParsedTransaction(
                    date=self._order_date(line.order_date, line.row_number, line.order_id, result),
                    amount=round_money(abs(line.total_owed)),
                    merchant=MERCHANT_NAME,
                    description=description,
                    is_income=line.total_owed < 0,
                    order_id=line.order_id or None,
                )
            )

    def _order_date(
        self, raw: str, row_number: int, order_id: str, result: AmazonExportResult
    ) -> date:
        """Parse an order date, falling back to today with a warning."""
        parsed = safe_parse_date(raw)
        if parsed is not None:
            return parsed

        message = (
            f"Line {row_number}: unparseable order date '{raw}' for order "
            f"{order_id or '(none)'}, using today's date"
        )
        logger.warning(message)
        result.warnings.append(message)
        return date.today()


def group_lines_by_order(lines: list[AmazonOrderLine]) -> list[AmazonOrder]:
    """Group item rows by Order ID, keeping first-seen order.

    The order date, status and payment method come from the order's first row.
    """
    orders: dict[str, AmazonOrder] = {}
    for line in lines:
        if not line.order_id:
            continue
        order = orders.get(line.order_id)
        if order is None:
            order = AmazonOrder(
                order_id=line.order_id,
                order_date=line.order_date,
                row_number=line.row_number,
                order_status=line.order_status,
                payment_method=line.payment_instrument_type,
                shipment_status=line.shipment_status,
            )
            orders[line.order_id] = order
        order.items.append(line)
    return list(orders.values())


def build_order_description(order: AmazonOrder) -> str:
    """Describe an aggregated order.

    Examples:
        "Order: 111-222 | ASIN: B01"
        "Order: 111-222 | 7 items | ASINs: B01, B02, B03, B04, B05 | ... and 2 more"
    """
    parts = [f"Order: {order.order_id}"]
    item_count = len(order.items)

    if item_count == 1:
        asin = order.items[0].asin
        if asin:
            parts.append(f"ASIN: {asin}")
    else:
        parts.append(f"{item_count} items")
        asins = [item.asin for item in order.items if item.asin][:MAX_LISTED_ASINS]
        if asins:
            parts.append(f"ASINs: {', '.join(asins)}")
        if item_count > MAX_LISTED_ASINS:
            parts.append(f"... and {item_count - MAX_LISTED_ASINS} more")

    return " | ".join(parts)
