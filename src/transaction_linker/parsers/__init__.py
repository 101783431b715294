"""CSV parsers for transaction imports."""

from transaction_linker.parsers.amazon_export_parser import (
    AmazonExportParser,
    AmazonExportResult,
)
from transaction_linker.parsers.amazon_parser import AmazonParser
from transaction_linker.parsers.base import BaseParser, ParseError, ParseResult
from transaction_linker.parsers.chase_parser import ChaseParser
from transaction_linker.parsers.csv_parser import CSVParser
from transaction_linker.parsers.csv_reader import parse_line, split_rows
from transaction_linker.parsers.detector import ImportDetector, ImportResult
from transaction_linker.parsers.format_detector import (
    CSVFormat,
    detect_format,
    get_format_name,
)

__all__ = [
    "BaseParser",
    "ParseError",
    "ParseResult",
    "CSVParser",
    "ChaseParser",
    "AmazonParser",
    "AmazonExportParser",
    "AmazonExportResult",
    "ImportDetector",
    "ImportResult",
    "CSVFormat",
    "detect_format",
    "get_format_name",
    "parse_line",
    "split_rows",
]
