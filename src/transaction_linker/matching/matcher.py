"""Candidate generation and selection for parent/children matches."""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from transaction_linker.config import MatchingConfig
from transaction_linker.matching.scorer import extract_order_id, score_match
from transaction_linker.models.link import MatchCandidate
from transaction_linker.models.transaction import LinkedTransaction
from transaction_linker.utils.date_utils import days_between
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class TransactionGroup:
    """Candidate children believed to come from one purchase."""

    key: str
    date: date
    transactions: list[LinkedTransaction]
    total_amount: Decimal


def is_within_date_window(parent_date: date, child_date: date, window_days: int) -> bool:
    """Check if a child date lies within ±window_days of the parent date."""
    return days_between(parent_date, child_date) <= window_days


def group_transactions_by_order(
    transactions: Sequence[LinkedTransaction],
) -> list[TransactionGroup]:
    """Group transactions by originating order id.

    Items from one order stay together even when they shipped on different
    days. Transactions without an order id fall back to grouping by date.

    Args:
        transactions: Candidate child transactions.

    Returns:
        Groups sorted by their earliest date, then key.
    """
    by_key: dict[str, list[LinkedTransaction]] = defaultdict(list)
    for txn in transactions:
        key = extract_order_id(txn) or f"date:{txn.date.isoformat()}"
        by_key[key].append(txn)

    groups = [
        TransactionGroup(
            key=key,
            date=min(txn.date for txn in members),
            transactions=members,
            total_amount=sum((txn.amount for txn in members), Decimal("0")),
        )
        for key, members in by_key.items()
    ]
    groups.sort(key=lambda g: (g.date, g.key))
    return groups


class TransactionMatcher:
    """Finds child groups that plausibly make up each parent charge.

    Pipeline per parent:
    - drop children that are already linked
    - keep parents whose merchant matches a configured keyword
    - keep children within the date window
    - group children by order, score each group
    - keep groups at or above the suggest threshold
    """

    def __init__(self, config: Optional[MatchingConfig] = None):
        """Initialize matcher.

        Args:
            config: Matching configuration (defaults apply when None).
        """
        self.config = config or MatchingConfig()

    def matches_merchant(self, transaction: LinkedTransaction) -> bool:
        """Check whether a parent's merchant contains a configured keyword."""
        merchant = transaction.merchant.lower()
        return any(keyword in merchant for keyword in self.config.merchant_keywords)

    def find_matches(
        self,
        parents: Sequence[LinkedTransaction],
        children: Sequence[LinkedTransaction],
    ) -> list[MatchCandidate]:
        """Score candidate groups for every parent.

        Args:
            parents: Potential parents (e.g. credit card charges).
            children: Potential children (e.g. order line items).

        Returns:
            Candidates at or above the suggest threshold, best first.
        """
        config = self.config
        unlinked_children = [child for child in children if not child.is_child]

        candidate_parents = list(parents)
        if config.enable_merchant_matching:
            candidate_parents = [p for p in candidate_parents if self.matches_merchant(p)]

        logger.debug(
            f"Matching {len(candidate_parents)} parents against "
            f"{len(unlinked_children)} unlinked children "
            f"(window={config.date_window}d, tolerance={config.amount_tolerance})"
        )

        matches: list[MatchCandidate] = []
        for parent in candidate_parents:
            if parent.is_child:
                logger.debug(f"Skipping parent {parent.id}: already linked as a child")
                continue

            candidates = [
                child
                for child in unlinked_children
                if child.id != parent.id
                and is_within_date_window(parent.date, child.date, config.date_window)
            ]
            if not candidates:
                logger.debug(f"No candidates within date window for parent {parent.id}")
                continue

            matched = False
            for group in group_transactions_by_order(candidates):
                candidate = score_match(parent, group.transactions, config)
                if candidate.total_score >= config.suggest_threshold:
                    matches.append(candidate)
                    matched = True
                else:
                    logger.debug(
                        f"Rejected group {group.key} for parent {parent.id}: "
                        f"score {candidate.total_score} < {config.suggest_threshold}"
                    )

            if not matched:
                logger.debug(
                    f"No group reached the suggest threshold for parent {parent.id} "
                    f"({len(candidates)} candidates checked)"
                )

        # Stable sort keeps parent order among equal scores
        matches.sort(key=lambda m: m.total_score, reverse=True)
        logger.info(f"Found {len(matches)} match candidates")
        return matches


def find_matching_transactions(
    parents: Sequence[LinkedTransaction],
    children: Sequence[LinkedTransaction],
    config: MatchingConfig,
) -> list[MatchCandidate]:
    """Convenience function to find match candidates.

    Args:
        parents: Potential parent transactions.
        children: Potential child transactions.
        config: Matching configuration.

    Returns:
        Candidates at or above the suggest threshold, best first.
    """
    return TransactionMatcher(config).find_matches(parents, children)
