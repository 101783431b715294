"""Format detection and parser dispatch for imported CSV files."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from transaction_linker.models.transaction import ParsedTransaction
from transaction_linker.parsers.amazon_export_parser import (
    AmazonExportParser,
    is_amazon_export_header,
)
from transaction_linker.parsers.amazon_parser import AmazonParser
from transaction_linker.parsers.base import BaseParser, read_text
from transaction_linker.parsers.chase_parser import ChaseParser
from transaction_linker.parsers.csv_parser import CSVParser
from transaction_linker.parsers.csv_reader import read_header
from transaction_linker.parsers.format_detector import (
    CSVFormat,
    detect_format,
    get_format_name,
)
from transaction_linker.utils.decimal_utils import sum_amounts
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ImportResult:
    """Outcome of importing one CSV document.

    Attributes:
        format: Detected CSV layout.
        parser_name: Parser that handled the document.
        success: Whether the import produced usable output.
        transactions: Parsed transactions.
        errors: Fatal or per-row errors.
        warnings: Non-fatal issues.
        skipped: Rows/orders deliberately left out (Amazon cancelled/zero).
    """

    format: CSVFormat
    parser_name: str
    success: bool
    transactions: list[ParsedTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def format_name(self) -> str:
        return get_format_name(self.format)

    @property
    def total_amount(self) -> Decimal:
        return sum_amounts(txn.amount for txn in self.transactions)


class ImportDetector:
    """Detects CSV layouts and routes documents to the right parser.

    Routing:
    - Amazon order-history data exports go to AmazonExportParser
    - Other Amazon order CSVs go to AmazonParser
    - Chase credit card exports go to ChaseParser
    - Everything else goes to the generic CSVParser
    """

    def __init__(self, strict: bool = False):
        """Initialize with all available parsers.

        Args:
            strict: If True, CSV parsers raise on row-level parse errors.
                   If False (default), row-level errors are collected.
        """
        self.strict = strict
        self.amazon_parser = AmazonParser(strict=strict)
        self.chase_parser = ChaseParser(strict=strict)
        self.generic_parser = CSVParser(strict=strict)

    def select_parser(self, fmt: CSVFormat, headers: list[str]) -> BaseParser:
        """Pick the row parser for anything but an Amazon data export.

        Chase-like headers that lack the exact Chase columns fall back to
        the generic parser.
        """
        if fmt == CSVFormat.CHASE_CREDIT_CARD:
            if self.chase_parser.can_parse(headers):
                return self.chase_parser
            logger.debug("Chase-like headers without Chase columns, using generic parser")
        elif fmt == CSVFormat.AMAZON:
            return self.amazon_parser
        return self.generic_parser

    def parse_content(self, content: str, aggregate_orders: bool = False) -> ImportResult:
        """Detect the format of CSV text and parse it.

        Args:
            content: Raw CSV text.
            aggregate_orders: For Amazon exports, emit one transaction per order.

        Returns:
            ImportResult carrying the detected format.
        """
        headers = read_header(content)
        fmt = detect_format(headers)
        logger.info(f"Detected format: {get_format_name(fmt)}")

        if fmt == CSVFormat.AMAZON and is_amazon_export_header(headers):
            amazon = AmazonExportParser(aggregate_orders=aggregate_orders)
            amazon_result = amazon.parse(content)
            return ImportResult(
                format=fmt,
                parser_name=type(amazon).__name__,
                success=amazon_result.success,
                transactions=amazon_result.transactions,
                errors=amazon_result.errors,
                warnings=amazon_result.warnings,
                skipped=amazon_result.skipped_orders,
            )

        parser = self.select_parser(fmt, headers)
        result = parser.parse(content)
        return ImportResult(
            format=fmt,
            parser_name=parser.name,
            success=result.success,
            transactions=result.transactions,
            errors=result.errors,
        )

    def parse_file(self, file_path: Path, aggregate_orders: bool = False) -> ImportResult:
        """Read a CSV file and parse it.

        Args:
            file_path: Path to the CSV file.
            aggregate_orders: For Amazon exports, emit one transaction per order.

        Returns:
            ImportResult for the file.

        Raises:
            ParseError: If the file cannot be read.
        """
        content = read_text(file_path)
        result = self.parse_content(content, aggregate_orders=aggregate_orders)
        logger.info(
            f"Parsed {len(result.transactions)} transactions from {file_path.name} "
            f"({len(result.errors)} errors)"
        )
        return result
