"""Merchant filtering and match scoring."""

from transaction_linker.matching.matcher import (
    TransactionGroup,
    TransactionMatcher,
    find_matching_transactions,
    group_transactions_by_order,
    is_within_date_window,
)
from transaction_linker.matching.merchant_filter import (
    is_line_item_merchant,
    is_linkable_marketplace_charge,
)
from transaction_linker.matching.scorer import (
    calculate_amount_score,
    calculate_date_score,
    calculate_order_group_score,
    confidence_level,
    extract_order_id,
    recommend,
    score_match,
)

__all__ = [
    "is_linkable_marketplace_charge",
    "is_line_item_merchant",
    "score_match",
    "calculate_date_score",
    "calculate_amount_score",
    "calculate_order_group_score",
    "confidence_level",
    "recommend",
    "extract_order_id",
    "TransactionMatcher",
    "TransactionGroup",
    "find_matching_transactions",
    "group_transactions_by_order",
    "is_within_date_window",
]
