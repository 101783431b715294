"""Generic transaction CSV parser (generic, bank statement and card layouts)."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from transaction_linker.models.transaction import ParsedTransaction
from transaction_linker.parsers.base import BaseParser, ParseError, ParseResult
from transaction_linker.parsers.csv_reader import read_rows
from transaction_linker.utils.date_utils import parse_date
from transaction_linker.utils.decimal_utils import parse_amount, round_money
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MERCHANT = "Unknown"

# Header aliases per column role (compared lowercased and stripped).
# Role order matters: a header is assigned to the first role that claims it.
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "transaction date", "trans date"),
    "amount": ("amount", "transaction amount", "value"),
    "merchant": ("merchant", "merchant name", "vendor", "payee"),
    "description": ("description", "notes", "memo", "details"),
    "debit": ("debit", "withdrawal", "withdrawals"),
    "credit": ("credit", "deposit", "deposits"),
    "category": ("category",),
}


@dataclass
class ColumnMapping:
    """Mapping of CSV columns to transaction fields."""

    date_col: Optional[int] = None
    amount_col: Optional[int] = None  # Single amount column (signed)
    merchant_col: Optional[int] = None
    description_col: Optional[int] = None
    debit_col: Optional[int] = None  # Separate debit column
    credit_col: Optional[int] = None  # Separate credit column
    category_col: Optional[int] = None

    @property
    def has_amount(self) -> bool:
        """Whether the mapping can produce an amount for each row."""
        return (
            self.amount_col is not None
            or self.debit_col is not None
            or self.credit_col is not None
        )


class CSVParser(BaseParser):
    """Parser for generic transaction CSV files.

    Subclasses can tune behaviour through class attributes:
    - column_aliases: header aliases per column role
    - required_labels: display names used in missing-column errors
    - negative_is_income: whether a negative amount means money in
    - merchant_from_description: use the description when there is no merchant
    """

    column_aliases: dict[str, tuple[str, ...]] = COLUMN_ALIASES
    required_labels: dict[str, str] = {"date": "date", "amount": "amount"}
    negative_is_income = True
    merchant_from_description = False

    def __init__(self, strict: bool = False):
        """Initialize CSV parser.

        Args:
            strict: If True, raise ParseError on the first bad row.
                   If False, record row errors and keep going.
        """
        self.strict = strict

    def can_parse(self, headers: list[str]) -> bool:
        """Check if the headers carry a date column and an amount source."""
        mapping = self.find_columns(headers)
        return mapping.date_col is not None and mapping.has_amount

    def parse(self, content: str) -> ParseResult:
        """Parse CSV text into normalized transactions.

        Args:
            content: Raw CSV text.

        Returns:
            ParseResult; success is True when at least one row parsed.

        Raises:
            ParseError: In strict mode, on the first row that fails.
        """
        if not content or not content.strip():
            return ParseResult.fatal("CSV file is empty")

        split = read_rows(content)
        rows = split.rows
        if not rows:
            return ParseResult.fatal("CSV file is empty")
        if len(rows) == 1:
            return ParseResult.fatal("No transaction data found")

        headers = [h.strip() for h in rows[0][1]]
        mapping = self.find_columns(headers)

        missing = self._missing_columns(mapping)
        if missing:
            return ParseResult.fatal(
                *(f"Missing required column: {label}" for label in missing)
            )

        transactions: list[ParsedTransaction] = []
        errors: list[str] = []

        split_issues = dict(split.issues)
        for row_number, values in rows[1:]:
            txn, row_errors = self._parse_row(values, mapping)
            if row_number in split_issues:
                row_errors.insert(0, split_issues[row_number])
                txn = None
            if row_errors:
                messages = [f"Row {row_number}: {err}" for err in row_errors]
                if self.strict:
                    raise ParseError(messages[0])
                errors.extend(messages)
                logger.debug(f"Skipping row {row_number}: {'; '.join(row_errors)}")
            elif txn is not None:
                transactions.append(txn)

        logger.info(
            f"{self.name} parsed {len(transactions)} transactions "
            f"({len(errors)} row errors)"
        )
        if errors:
            logger.warning(f"{len(errors)} row problems while parsing CSV - use -v for details")

        return ParseResult(
            success=len(transactions) > 0,
            transactions=transactions,
            errors=errors,
        )

    def find_columns(self, headers: list[str]) -> ColumnMapping:
        """Resolve column positions from header aliases.

        Args:
            headers: Header row fields.

        Returns:
            ColumnMapping with the first matching column for each role.
        """
        positions: dict[str, int] = {}
        for index, header in enumerate(headers):
            normalized = header.strip().lower()
            for role, aliases in self.column_aliases.items():
                if role not in positions and normalized in aliases:
                    positions[role] = index
                    break

        return ColumnMapping(
            date_col=positions.get("date"),
            amount_col=positions.get("amount"),
            merchant_col=positions.get("merchant"),
            description_col=positions.get("description"),
            debit_col=positions.get("debit"),
            credit_col=positions.get("credit"),
            category_col=positions.get("category"),
        )

    def _missing_columns(self, mapping: ColumnMapping) -> list[str]:
        missing: list[str] = []
        for role, label in self.required_labels.items():
            if role == "amount":
                found = mapping.has_amount
            else:
                found = getattr(mapping, f"{role}_col") is not None
            if not found:
                missing.append(label)
        return missing

    def _parse_row(
        self, values: list[str], mapping: ColumnMapping
    ) -> tuple[Optional[ParsedTransaction], list[str]]:
        """Parse a single CSV row.

        Args:
            values: Row fields.
            mapping: Column mapping.

        Returns:
            Tuple of (transaction or None, list of row errors).
        """
        row_errors: list[str] = []

        date_str = self._safe_get(values, mapping.date_col)
        parsed_date = None
        try:
            parsed_date = parse_date(date_str)
        except ValueError:
            row_errors.append(f"Invalid date format: {date_str}")

        amount: Optional[Decimal] = None
        is_income = False
        try:
            amount, is_income = self._parse_amount(values, mapping)
        except ValueError:
            row_errors.append(f"Invalid amount: {self._raw_amount(values, mapping)}")

        if row_errors or parsed_date is None or amount is None:
            return None, row_errors

        description = self._safe_get(values, mapping.description_col)
        merchant = self._safe_get(values, mapping.merchant_col)
        if not merchant and self.merchant_from_description:
            merchant = description
        category = self._safe_get(values, mapping.category_col)

        return (
            ParsedTransaction(
                date=parsed_date,
                amount=amount,
                merchant=merchant or DEFAULT_MERCHANT,
                description=description,
                is_income=is_income,
                category=category or None,
            ),
            [],
        )

    def _parse_amount(self, values: list[str], mapping: ColumnMapping) -> tuple[Decimal, bool]:
        """Return (magnitude, is_income) for a row.

        Raises:
            ValueError: If no usable amount is present.
        """
        if mapping.amount_col is not None:
            magnitude, is_negative = parse_amount(self._safe_get(values, mapping.amount_col))
            is_income = is_negative if self.negative_is_income else not is_negative and magnitude != 0
            return round_money(magnitude), is_income

        # Separate debit/credit columns; debit wins when both are filled
        debit_str = self._safe_get(values, mapping.debit_col)
        credit_str = self._safe_get(values, mapping.credit_col)
        if debit_str and credit_str:
            logger.warning(f"Row has both debit ({debit_str}) and credit ({credit_str}); using debit")
        if debit_str:
            magnitude, _ = parse_amount(debit_str)
            return round_money(magnitude), False
        if credit_str:
            magnitude, _ = parse_amount(credit_str)
            return round_money(magnitude), True
        raise ValueError("Empty debit and credit")

    def _raw_amount(self, values: list[str], mapping: ColumnMapping) -> str:
        if mapping.amount_col is not None:
            return self._safe_get(values, mapping.amount_col)
        return self._safe_get(values, mapping.debit_col) or self._safe_get(values, mapping.credit_col)

    def _safe_get(self, row: list[str], idx: Optional[int]) -> str:
        """Safely get a stripped value from a row.

        Args:
            row: CSV row.
            idx: Column index.

        Returns:
            Value at index, or "" when the column is absent.
        """
        if idx is None or idx < 0 or idx >= len(row):
            return ""
        return row[idx].strip()
