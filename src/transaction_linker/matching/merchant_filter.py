"""Merchant eligibility filter for marketplace charges.

Linkable charges look like:
- AMAZON MKTPL*NM9QH43N0
- Amazon.com*NU7SY9GM0
- AMZN MKTP US*AB1CD2EF3

Not linkable:
- Amazon Grocery Subscri, AMAZON PRIME*..., Amazon Music, AWS
- Amazon (exact match, an imported line item)
"""

import re
from typing import Optional

from transaction_linker.config import MerchantFilterConfig

# Transaction code: an asterisk immediately followed by an alphanumeric
TRANSACTION_CODE_PATTERN = re.compile(r"\*[a-z0-9]", re.IGNORECASE)


def _normalize(merchant: Optional[str]) -> str:
    return merchant.strip().lower() if merchant else ""


def is_line_item_merchant(
    merchant: Optional[str], config: Optional[MerchantFilterConfig] = None
) -> bool:
    """Check if a merchant is the bare marketplace name used for line items.

    Args:
        merchant: Merchant name from a transaction.
        config: Filter configuration (defaults apply when None).

    Returns:
        True if the merchant denotes an imported order line item.
    """
    config = config or MerchantFilterConfig()
    return _normalize(merchant) == config.line_item_merchant


def is_linkable_marketplace_charge(
    merchant: Optional[str], config: Optional[MerchantFilterConfig] = None
) -> bool:
    """Check if a merchant string is a marketplace charge that can take children.

    Rules are applied in order; the denylist wins over every positive match.

    Args:
        merchant: Merchant name from a transaction.
        config: Filter configuration (defaults apply when None).

    Returns:
        True if this is a marketplace charge that order items can link to.
    """
    config = config or MerchantFilterConfig()
    normalized = _normalize(merchant)

    if not normalized:
        return False

    if normalized == config.line_item_merchant:
        return False

    if any(pattern in normalized for pattern in config.denylist):
        return False

    if not any(token in normalized for token in config.brand_tokens):
        return False

    has_marketplace_pattern = any(
        pattern in normalized for pattern in config.marketplace_patterns
    )
    has_transaction_code = TRANSACTION_CODE_PATTERN.search(normalized) is not None

    return has_marketplace_pattern and has_transaction_code
