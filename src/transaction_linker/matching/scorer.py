"""Multi-factor confidence scoring for parent/children matches.

A match earns up to 100 points from three independent components:

- date proximity: 0-40
- amount agreement: 0-50
- shared order id: 0 or 10

Both partial-credit curves are linear.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from transaction_linker.config import MatchingConfig
from transaction_linker.models.link import ConfidenceLevel, MatchCandidate, Recommendation
from transaction_linker.models.transaction import LinkedTransaction
from transaction_linker.utils.date_utils import days_between

MAX_DATE_SCORE = 40
MAX_AMOUNT_SCORE = 50
MAX_ORDER_GROUP_SCORE = 10

# Lower bounds of each confidence label
EXACT_MIN_SCORE = 90
PARTIAL_MIN_SCORE = 70
FUZZY_MIN_SCORE = 50

# "Order: 112-1234567-1234567" as written by the Amazon export parser
ORDER_ID_PATTERN = re.compile(r"Order:\s*([^\s|]+)")


def _round_points(points: Decimal) -> int:
    return int(points.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_date_score(
    parent: LinkedTransaction,
    children: Sequence[LinkedTransaction],
    window_days: int,
) -> int:
    """Score how close the children's dates are to the parent's (0-40).

    The largest gap between the parent and any child is used, and points
    decay linearly across the window, reaching zero at its boundary.

    Args:
        parent: Parent transaction.
        children: Candidate children (non-empty).
        window_days: Date window size in days.

    Returns:
        Date score from 0 to 40.
    """
    gap = max(days_between(parent.date, child.date) for child in children)
    if gap >= window_days:
        return 0

    remaining = Decimal(window_days - gap) / Decimal(window_days)
    return _round_points(MAX_DATE_SCORE * remaining)


def calculate_amount_score(
    parent_amount: Decimal,
    children_total: Decimal,
    tolerance: Decimal,
    ceiling: Decimal,
) -> int:
    """Score how well the children sum to the parent amount (0-50).

    Differences within the tolerance (delivery fees, rounding) earn full
    points. Beyond it points fall linearly, reaching zero at the ceiling.

    Args:
        parent_amount: Parent amount.
        children_total: Sum of the children amounts.
        tolerance: Largest difference that still earns full points.
        ceiling: Difference at which the score reaches zero.

    Returns:
        Amount score from 0 to 50.
    """
    if parent_amount == 0:
        return 0

    difference = abs(parent_amount - children_total)
    if difference <= tolerance:
        return MAX_AMOUNT_SCORE
    if difference >= ceiling:
        return 0

    remaining = (ceiling - difference) / (ceiling - tolerance)
    return _round_points(MAX_AMOUNT_SCORE * remaining)


def extract_order_id(transaction: LinkedTransaction) -> Optional[str]:
    """Find the originating order id recorded for a transaction.

    Checks the order_id column, then link metadata, then an "Order: <id>"
    description written at import time.

    Args:
        transaction: Transaction to inspect.

    Returns:
        The order id, or None if none is recorded.
    """
    if transaction.order_id:
        return transaction.order_id
    if transaction.link_metadata.order_id:
        return transaction.link_metadata.order_id

    match = ORDER_ID_PATTERN.search(transaction.description or "")
    return match.group(1) if match else None


def calculate_order_group_score(children: Sequence[LinkedTransaction]) -> int:
    """Score whether all children share one order id (0 or 10).

    Args:
        children: Candidate children.

    Returns:
        10 when every child carries the same non-empty order id, else 0.
    """
    order_ids = {extract_order_id(child) for child in children}
    if len(order_ids) == 1 and None not in order_ids:
        return MAX_ORDER_GROUP_SCORE
    return 0


def confidence_level(score: int) -> ConfidenceLevel:
    """Label a total score.

    Args:
        score: Total match score (0-100).

    Returns:
        EXACT (90+), PARTIAL (70+), FUZZY (50+) or UNMATCHED.
    """
    if score >= EXACT_MIN_SCORE:
        return ConfidenceLevel.EXACT
    if score >= PARTIAL_MIN_SCORE:
        return ConfidenceLevel.PARTIAL
    if score >= FUZZY_MIN_SCORE:
        return ConfidenceLevel.FUZZY
    return ConfidenceLevel.UNMATCHED


def recommend(score: int, config: MatchingConfig) -> Recommendation:
    """Decide what to do with a score under the configured thresholds.

    These thresholds are independent of the confidence labels: a PARTIAL
    score of 75 is ignored, suggested or auto-linked depending on config.

    Args:
        score: Total match score.
        config: Matching configuration.

    Returns:
        The recommended action.
    """
    if score >= config.auto_link_threshold:
        return Recommendation.AUTO_LINK
    if score >= config.suggest_threshold:
        return Recommendation.SUGGEST
    return Recommendation.IGNORE


def score_match(
    parent: LinkedTransaction,
    children: Sequence[LinkedTransaction],
    config: MatchingConfig,
) -> MatchCandidate:
    """Score a parent against a set of candidate children.

    Args:
        parent: Parent transaction (e.g. a credit card charge).
        children: Candidate child line items.
        config: Matching configuration.

    Returns:
        MatchCandidate with the component scores, total and level.

    Raises:
        ValueError: If no children are given.
    """
    if not children:
        raise ValueError("Cannot score a match without child transactions")

    children_total = sum((child.amount for child in children), Decimal("0"))

    date_score = calculate_date_score(parent, children, config.date_window)
    amount_score = calculate_amount_score(
        parent.amount, children_total, config.amount_tolerance, config.amount_ceiling
    )
    order_group_score = calculate_order_group_score(children)
    total = date_score + amount_score + order_group_score

    return MatchCandidate(
        parent=parent,
        children=list(children),
        date_score=date_score,
        amount_score=amount_score,
        order_group_score=order_group_score,
        total_score=total,
        confidence_level=confidence_level(total),
    )
