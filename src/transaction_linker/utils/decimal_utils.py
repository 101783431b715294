"""Decimal utilities for money handling.

All monetary values are Decimal. Binary floats never touch an amount, so sums
of many line items cannot drift off the cent boundary.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional


# Currency symbols to strip
CURRENCY_SYMBOLS = {"$", "€", "£", "¥"}

# One cent, the quantum every stored amount is rounded to
CENT = Decimal("0.01")

# Regex for parentheses-enclosed negatives: ($1,234.56) or (1234.56)
PARENS_NEGATIVE_PATTERN = re.compile(r"^\s*\(\s*([^)]+)\s*\)\s*$")

# Values some exports write instead of an empty cell
NOT_APPLICABLE_VALUES = {"", "not applicable", "n/a"}


def parse_amount(raw_amount: str) -> tuple[Decimal, bool]:
    """Parse a raw amount string into a Decimal magnitude and a sign flag.

    Handles:
    - Standard: 1234.56, -1234.56
    - With currency: $1,234.56, -$1,234.56, €12.00
    - Parentheses for negative: ($1,234.56), (1234.56)

    Commas are always thousands separators.

    Args:
        raw_amount: The raw amount string to parse.

    Returns:
        Tuple of (absolute amount as Decimal, is_negative flag).

    Raises:
        ValueError: If the amount is empty, not a number, or not finite.
    """
    if not raw_amount or not raw_amount.strip():
        raise ValueError("Empty amount string")

    original = raw_amount
    amount_str = raw_amount.strip()
    is_negative = False

    parens_match = PARENS_NEGATIVE_PATTERN.match(amount_str)
    if parens_match:
        amount_str = parens_match.group(1).strip()
        is_negative = True

    # Remove currency symbols before the sign so "$-5" and "-$5" both work
    for symbol in CURRENCY_SYMBOLS:
        amount_str = amount_str.replace(symbol, "")
    amount_str = amount_str.strip()

    if amount_str.startswith("-"):
        is_negative = True
        amount_str = amount_str[1:].strip()
    elif amount_str.startswith("+"):
        amount_str = amount_str[1:].strip()

    amount_str = amount_str.replace(",", "").replace(" ", "")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount '{original}': {e}") from e

    if not amount.is_finite():
        raise ValueError(f"Amount is not a finite number: '{original}'")

    return abs(amount), is_negative


def parse_optional_amount(raw_amount: Optional[str]) -> Decimal:
    """Parse an amount where blank or "Not Applicable" means zero.

    Args:
        raw_amount: Raw cell value, possibly None.

    Returns:
        Signed Decimal amount, Decimal("0") for blank cells.

    Raises:
        ValueError: If a non-blank value is not a number.
    """
    if raw_amount is None or raw_amount.strip().lower() in NOT_APPLICABLE_VALUES:
        return Decimal("0")
    magnitude, is_negative = parse_amount(raw_amount)
    return -magnitude if is_negative else magnitude


def round_money(amount: Decimal) -> Decimal:
    """Round an amount to cents using half-up rounding.

    Args:
        amount: The amount to round.

    Returns:
        Amount quantized to two decimal places.
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format a Decimal amount for display.

    Args:
        amount: The amount to format.
        symbol: Currency symbol prefix.

    Returns:
        Formatted string like "$1,234.56" or "-$5.00".
    """
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Sum Decimal amounts and round the result to cents.

    Args:
        amounts: Decimal amounts.

    Returns:
        Rounded sum as Decimal.
    """
    total = Decimal("0")
    for amount in amounts:
        total += amount
    return round_money(total)
