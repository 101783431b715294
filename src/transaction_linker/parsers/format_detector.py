"""CSV layout detection from header rows."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)

# Scoring weights
BASE_SCORE = 1000
REQUIRED_COLUMN_BONUS = 200
OPTIONAL_COLUMN_BONUS = 50
PRIORITY_PENALTY = 100

_SEPARATOR_PATTERN = re.compile(r"[_\-.]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


class CSVFormat(Enum):
    """Known CSV layouts."""

    AMAZON = "amazon"
    CHASE_CREDIT_CARD = "chase_credit_card"
    BANK_STATEMENT = "bank_statement"
    CREDIT_CARD = "credit_card"
    GENERIC = "generic"


@dataclass(frozen=True)
class FormatSignature:
    """Column evidence identifying a CSV layout.

    Attributes:
        required_columns: Patterns that must all match a header. A pattern
            may list alternatives separated by "|" (e.g. "asin|order").
        optional_columns: Patterns that add confidence when present.
        priority: Lower numbers are more specific and win ties.
    """

    required_columns: tuple[str, ...]
    optional_columns: tuple[str, ...]
    priority: int


# Declaration order is the final tie-breaker
FORMAT_SIGNATURES: dict[CSVFormat, FormatSignature] = {
    CSVFormat.AMAZON: FormatSignature(
        # Amazon is identified by ASIN or "order" columns
        required_columns=("asin|order",),
        optional_columns=("price", "description", "category", "quantity", "item"),
        priority=1,
    ),
    CSVFormat.CHASE_CREDIT_CARD: FormatSignature(
        required_columns=("transaction date", "post date", "description"),
        optional_columns=("amount", "category", "type", "memo"),
        priority=1,
    ),
    CSVFormat.BANK_STATEMENT: FormatSignature(
        required_columns=("date", "debit|credit|balance"),
        optional_columns=("description", "amount", "type", "memo", "check"),
        priority=2,
    ),
    CSVFormat.CREDIT_CARD: FormatSignature(
        required_columns=("date", "merchant|transaction"),
        optional_columns=("amount", "category", "post", "memo", "card"),
        priority=3,
    ),
    CSVFormat.GENERIC: FormatSignature(
        required_columns=("date",),
        optional_columns=("amount", "merchant", "description", "price"),
        priority=4,
    ),
}

FORMAT_NAMES = {
    CSVFormat.AMAZON: "Amazon Order History",
    CSVFormat.CHASE_CREDIT_CARD: "Chase Credit Card",
    CSVFormat.BANK_STATEMENT: "Bank Statement",
    CSVFormat.CREDIT_CARD: "Credit Card Statement",
    CSVFormat.GENERIC: "Generic Transaction CSV",
}


def normalize_header(header: str) -> str:
    """Normalize a header for comparison.

    Lowercases, turns "_", "-" and "." into spaces and collapses whitespace.

    Args:
        header: Raw header text.

    Returns:
        Normalized header.
    """
    normalized = _SEPARATOR_PATTERN.sub(" ", header.lower().strip())
    return _WHITESPACE_PATTERN.sub(" ", normalized).strip()


def has_column(normalized_headers: Sequence[str], pattern: str) -> bool:
    """Check if any normalized header contains the pattern.

    Args:
        normalized_headers: Headers already passed through normalize_header().
        pattern: Column pattern, possibly with "|" alternatives.

    Returns:
        True if some header contains the pattern or one of its alternatives.
    """
    for alternative in pattern.split("|"):
        needle = normalize_header(alternative)
        if needle and any(needle in header for header in normalized_headers):
            return True
    return False


def calculate_match_score(
    normalized_headers: Sequence[str], signature: FormatSignature
) -> int:
    """Score how well headers fit a format signature.

    Zero unless every required pattern matches. Otherwise the base score,
    plus a bonus per required column (rewarding more specific evidence) and
    per matched optional column, minus a penalty per priority level.

    Args:
        normalized_headers: Normalized header row.
        signature: Format signature to test.

    Returns:
        Match score, 0 for no match.
    """
    if not all(has_column(normalized_headers, col) for col in signature.required_columns):
        return 0

    optional_matches = sum(
        1 for col in signature.optional_columns if has_column(normalized_headers, col)
    )

    return (
        BASE_SCORE
        + REQUIRED_COLUMN_BONUS * len(signature.required_columns)
        + OPTIONAL_COLUMN_BONUS * optional_matches
        - PRIORITY_PENALTY * signature.priority
    )


def score_formats(headers: Sequence[str]) -> list[tuple[CSVFormat, int]]:
    """Score every known format against a header row.

    Args:
        headers: Raw header fields.

    Returns:
        (format, score) pairs, best first. Ties go to the lower priority
        number, then to declaration order.
    """
    normalized = [normalize_header(h) for h in headers]
    order = {fmt: index for index, fmt in enumerate(FORMAT_SIGNATURES)}

    scores = [
        (fmt, calculate_match_score(normalized, signature))
        for fmt, signature in FORMAT_SIGNATURES.items()
    ]
    scores.sort(key=lambda item: (-item[1], FORMAT_SIGNATURES[item[0]].priority, order[item[0]]))
    return scores


def detect_format(headers: Sequence[str]) -> CSVFormat:
    """Detect the CSV layout from its header row.

    Every header list maps to exactly one format; GENERIC is the fallback.

    Args:
        headers: Raw header fields.

    Returns:
        The best-scoring format, or GENERIC when nothing scores.
    """
    if not headers:
        return CSVFormat.GENERIC

    best_format, best_score = score_formats(headers)[0]
    if best_score <= 0:
        logger.debug(f"No format matched headers {list(headers)}, using generic")
        return CSVFormat.GENERIC

    logger.debug(f"Detected {best_format.value} format (score {best_score})")
    return best_format


def get_format_name(fmt: CSVFormat) -> str:
    """Get a human-readable format name."""
    return FORMAT_NAMES[fmt]
