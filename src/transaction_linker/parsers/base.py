"""Abstract base class and result types for CSV parsers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from transaction_linker.models.transaction import ParsedTransaction
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)


class ParseError(Exception):
    """Exception raised when a file cannot be read or parsed at all."""

    def __init__(self, message: str, file_path: Optional[Path] = None):
        """Initialize ParseError.

        Args:
            message: Error message.
            file_path: Optional path to the file that failed to parse.
        """
        self.file_path = file_path
        super().__init__(message)


@dataclass
class ParseResult:
    """Outcome of parsing one CSV document.

    A structurally invalid document yields no transactions and a single
    error. Otherwise bad rows are reported in ``errors`` and skipped, and
    ``success`` is True when at least one row was parsed.
    """

    success: bool
    transactions: list[ParsedTransaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def fatal(cls, *errors: str) -> "ParseResult":
        """Build a failed result for a structurally invalid document."""
        return cls(success=False, transactions=[], errors=list(errors))


class BaseParser(ABC):
    """Abstract base class for all CSV parsers.

    Subclasses must implement:
    - can_parse(): Check if this parser understands a header row
    - parse(): Parse CSV text into normalized transactions
    """

    @property
    def name(self) -> str:
        """Return parser name for logging.

        Returns:
            Parser name string.
        """
        return self.__class__.__name__

    @abstractmethod
    def can_parse(self, headers: list[str]) -> bool:
        """Check if this parser can handle a document with these headers.

        Args:
            headers: Header row fields.

        Returns:
            True if this parser can handle the document.
        """
        pass

    @abstractmethod
    def parse(self, content: str) -> ParseResult:
        """Parse CSV text and return normalized transactions.

        Args:
            content: Raw CSV text.

        Returns:
            ParseResult with transactions and any errors.
        """
        pass

    def parse_file(self, file_path: Path) -> ParseResult:
        """Read a CSV file and parse it.

        Args:
            file_path: Path to the file to parse.

        Returns:
            ParseResult with transactions and any errors.

        Raises:
            ParseError: If the file cannot be read.
        """
        return self.parse(read_text(file_path))


def read_text(file_path: Path) -> str:
    """Read a UTF-8 text file, tolerating a byte order mark.

    Args:
        file_path: Path to the file.

    Returns:
        File content as text.

    Raises:
        ParseError: If the file does not exist or cannot be decoded.
    """
    if not file_path.exists():
        raise ParseError(f"File not found: {file_path}", file_path)

    try:
        with open(file_path, encoding="utf-8-sig", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not valid UTF-8: {e}", file_path) from e
    except OSError as e:
        raise ParseError(f"Could not read file: {e}", file_path) from e
