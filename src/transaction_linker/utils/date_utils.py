"""Date parsing and normalization utilities."""

import re
from datetime import date, datetime, timezone

# Common date format patterns
#
# IMPORTANT - Date Format Ambiguity:
# Slash-separated dates (e.g., "03/04/2024") are always interpreted as US format (MM/DD/YYYY).
# For European dates (DD/MM/YYYY), use period-separated format (03.04.2024) or ISO format (2024-04-03).
#
# Two-digit years use Python's strptime pivot:
# - Years 00-68 map to 2000-2068
# - Years 69-99 map to 1969-1999
#
DATE_PATTERNS = [
    # ISO format (most common, try first)
    (r"^(\d{4})-(\d{1,2})-(\d{1,2})$", "%Y-%m-%d"),
    (r"^(\d{4})/(\d{1,2})/(\d{1,2})$", "%Y/%m/%d"),
    # US formats (MM/DD/YYYY) - slash-separated always interpreted as US
    (r"^(\d{1,2})/(\d{1,2})/(\d{4})$", "%m/%d/%Y"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{2})$", "%m/%d/%y"),
    (r"^(\d{1,2})-(\d{1,2})-(\d{4})$", "%m-%d-%Y"),
    # European formats (DD.MM.YYYY)
    (r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", "%d.%m.%Y"),
    # Text month formats
    (r"^(\d{1,2})-(\w{3})-(\d{4})$", "%d-%b-%Y"),
    (r"^(\w{3})\s+(\d{1,2}),\s+(\d{4})$", "%b %d, %Y"),
    (r"^(\w{3})\s+(\d{1,2})\s+(\d{4})$", "%b %d %Y"),
    (r"^(\w+)\s+(\d{1,2}),\s+(\d{4})$", "%B %d, %Y"),
    # Compact format
    (r"^(\d{8})$", "%Y%m%d"),
]

# Compiled regex patterns for efficiency
COMPILED_PATTERNS = [(re.compile(pattern), fmt) for pattern, fmt in DATE_PATTERNS]

# ISO-8601 timestamp with a time component, e.g. 2024-01-15T10:30:00Z
TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def parse_date(raw_date: str) -> date:
    """Parse a raw date string into a date object.

    Handles various formats:
    - ISO: 2024-01-15, 2024/01/15
    - US: 01/15/2024, 1/15/24, 01-15-2024
    - European: 15.01.2024
    - Text: 15-Jan-2024, Jan 15, 2024, January 15, 2024
    - Compact: 20240115
    - ISO timestamps: 2024-01-15T10:30:00Z (see parse_timestamp_date)

    Args:
        raw_date: The raw date string to parse.

    Returns:
        Parsed date object.

    Raises:
        ValueError: If the date cannot be parsed.
    """
    if not raw_date:
        raise ValueError("Empty date string")

    date_str = raw_date.strip()
    if not date_str:
        raise ValueError("Empty date string after stripping whitespace")

    if TIMESTAMP_PATTERN.match(date_str):
        return parse_timestamp_date(date_str)

    for pattern, fmt in COMPILED_PATTERNS:
        if pattern.match(date_str):
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                # Pattern matched but format didn't work, try next
                continue

    raise ValueError(f"Cannot parse date: '{raw_date}'")


def parse_timestamp_date(raw_timestamp: str) -> date:
    """Parse an ISO-8601 timestamp and return its calendar date.

    A trailing ``Z`` is accepted. Offset-aware timestamps are converted to
    UTC before the time of day is dropped; naive ones are taken as-is.

    Args:
        raw_timestamp: Timestamp such as "2024-01-15T10:30:00Z".

    Returns:
        The UTC calendar date of the timestamp.

    Raises:
        ValueError: If the timestamp cannot be parsed.
    """
    value = raw_timestamp.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Cannot parse timestamp: '{raw_timestamp}'") from e

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def safe_parse_date(raw_date: str | None, default: date | None = None) -> date | None:
    """Safely parse a date string, returning default on failure.

    Args:
        raw_date: The raw date string to parse.
        default: Default value if parsing fails.

    Returns:
        Parsed date or default.
    """
    if not raw_date:
        return default

    try:
        return parse_date(raw_date)
    except ValueError:
        return default


def days_between(first: date, second: date) -> int:
    """Absolute number of days between two dates."""
    return abs((first - second).days)
