"""Parser for simple Amazon order-history CSVs.

These are the hand-downloaded or browser-extension exports with one row
per item, for example:
    order id,order date,description,price,ASIN,category,quantity

Only the order date and price columns are required. Orders that have not
shipped yet carry "pending" instead of a date; they take the date of the
last dated row above them. Categories are breadcrumb paths such as
"Health & Household›Household Supplies›Paper Towels".
"""

import re
from datetime import date
from typing import Optional

from transaction_linker.models.transaction import ParsedTransaction
from transaction_linker.parsers.base import BaseParser, ParseError, ParseResult
from transaction_linker.parsers.csv_reader import read_rows
from transaction_linker.utils.date_utils import safe_parse_date
from transaction_linker.utils.decimal_utils import parse_amount, round_money
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)

MERCHANT_NAME = "Amazon"
DEFAULT_DESCRIPTION = "Amazon Purchase"
PENDING_DATE = "pending"
CATEGORY_SEPARATOR = "›"

_WHITESPACE_PATTERN = re.compile(r"\s+")


def _normalize_header(header: str) -> str:
    return _WHITESPACE_PATTERN.sub(" ", header.strip().lower())


def find_amazon_columns(headers: list[str]) -> dict[str, int]:
    """Map column roles to header positions.

    "order date" and "order id" are matched by their words, everything else
    by the whole header. Later duplicates win.

    Args:
        headers: Header row fields.

    Returns:
        Role name to column index, for the roles that were found.
    """
    columns: dict[str, int] = {}
    for index, header in enumerate(headers):
        normalized = _normalize_header(header)
        if "order" in normalized and "date" in normalized:
            columns["order_date"] = index
        elif normalized == "price":
            columns["price"] = index
        elif normalized == "description":
            columns["description"] = index
        elif "order" in normalized and "id" in normalized:
            columns["order_id"] = index
        elif normalized == "category":
            columns["category"] = index
    return columns


def split_category(raw: str) -> tuple[Optional[str], Optional[str]]:
    """Reduce a category breadcrumb to (category, subcategory).

    Examples:
        "Books" -> ("Books", None)
        "Books›Fiction" -> ("Books", "Fiction")
        "Health & Household›Household Supplies›Paper Towels"
            -> ("Household Supplies", "Paper Towels")

    Three or more levels skip the top-level department.
    """
    parts = [part.strip() for part in raw.split(CATEGORY_SEPARATOR) if part.strip()]
    if not parts:
        return None, None
    if len(parts) == 1:
        return parts[0], None
    if len(parts) == 2:
        return parts[0], parts[1]
    return parts[1], parts[2]


class AmazonParser(BaseParser):
    """Parser for simple Amazon order-history CSVs.

    Every item row becomes one "Amazon" transaction. A negative price is a
    refund and is emitted as income.
    """

    def __init__(self, strict: bool = False):
        """Initialize the parser.

        Args:
            strict: If True, raise ParseError on the first bad row.
        """
        self.strict = strict

    def can_parse(self, headers: list[str]) -> bool:
        """Check for order date and price columns."""
        columns = find_amazon_columns(headers)
        return "order_date" in columns and "price" in columns

    def parse(self, content: str) -> ParseResult:
        """Parse simple Amazon order-history CSV text.

        Args:
            content: Raw CSV text.

        Returns:
            ParseResult with one transaction per item row.

        Raises:
            ParseError: In strict mode, on the first bad row.
        """
        if not content or not content.strip():
            return ParseResult.fatal("Empty CSV file")

        split = read_rows(content)
        rows = split.rows
        if len(rows) == 1:
            return ParseResult.fatal("No transaction data found")

        headers = [h.strip() for h in rows[0][1]]
        columns = find_amazon_columns(headers)

        missing = [
            label
            for role, label in (("order_date", "order date"), ("price", "price"))
            if role not in columns
        ]
        if missing:
            return ParseResult.fatal(f"Missing required columns: {', '.join(missing)}")

        transactions: list[ParsedTransaction] = []
        errors: list[str] = []
        split_issues = dict(split.issues)
        last_valid_date: Optional[date] = None

        for row_number, values in rows[1:]:
            if row_number in split_issues:
                row_errors = [split_issues[row_number]]
                txn = None
            else:
                txn, row_errors = self._parse_row(values, columns, last_valid_date)

            if row_errors:
                messages = [f"Row {row_number}: {err}" for err in row_errors]
                if self.strict:
                    raise ParseError(messages[0])
                errors.extend(messages)
                continue
            if txn is None:
                continue

            transactions.append(txn)
            if self._get(values, columns, "order_date").lower() != PENDING_DATE:
                last_valid_date = txn.date

        logger.info(
            f"Amazon order history: {len(transactions)} transactions, {len(errors)} row errors"
        )
        return ParseResult(success=bool(transactions), transactions=transactions, errors=errors)

    def _parse_row(
        self,
        values: list[str],
        columns: dict[str, int],
        last_valid_date: Optional[date],
    ) -> tuple[Optional[ParsedTransaction], list[str]]:
        """Parse one item row.

        Returns:
            Tuple of (transaction or None, list of row errors). Rows with
            neither a date nor a price are blank filler and give (None, []).
        """
        date_str = self._get(values, columns, "order_date")
        price_str = self._get(values, columns, "price")
        if not date_str and not price_str:
            return None, []

        row_errors: list[str] = []

        if date_str.lower() == PENDING_DATE:
            parsed_date = last_valid_date
        else:
            parsed_date = safe_parse_date(date_str)
        if parsed_date is None:
            row_errors.append(f"Invalid date format: {date_str}")

        try:
            amount, is_refund = parse_amount(price_str)
        except ValueError:
            row_errors.append(f"Invalid price: {price_str}")

        if row_errors:
            return None, row_errors

        category, subcategory = split_category(self._get(values, columns, "category"))
        return (
            ParsedTransaction(
                date=parsed_date,
                amount=round_money(amount),
                merchant=MERCHANT_NAME,
                description=self._get(values, columns, "description") or DEFAULT_DESCRIPTION,
                is_income=is_refund,
                category=category,
                subcategory=subcategory,
                order_id=self._get(values, columns, "order_id") or None,
            ),
            [],
        )

    @staticmethod
    def _get(values: list[str], columns: dict[str, int], role: str) -> str:
        idx = columns.get(role)
        if idx is None or idx >= len(values):
            return ""
        return values[idx].strip()
