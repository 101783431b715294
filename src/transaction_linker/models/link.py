"""Request, response and candidate models for transaction linking."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from transaction_linker.models.transaction import (
    LinkedTransaction,
    LinkMetadata,
    LinkType,
    MatchScores,
)


class ConfidenceLevel(Enum):
    """Label for a total match score."""

    EXACT = "EXACT"  # 90+
    PARTIAL = "PARTIAL"  # 70-89
    FUZZY = "FUZZY"  # 50-69
    UNMATCHED = "UNMATCHED"  # below 50


class Recommendation(Enum):
    """What to do with a scored match under the configured thresholds."""

    AUTO_LINK = "auto_link"
    SUGGEST = "suggest"
    IGNORE = "ignore"


@dataclass
class MatchCandidate:
    """A parent paired with candidate children and their scores.

    Request-scoped; never persisted.
    """

    parent: LinkedTransaction
    children: list[LinkedTransaction]
    date_score: int
    amount_score: int
    order_group_score: int
    total_score: int
    confidence_level: ConfidenceLevel

    @property
    def scores(self) -> MatchScores:
        """Score breakdown as stored in link metadata."""
        return MatchScores(
            date_score=self.date_score,
            amount_score=self.amount_score,
            order_group_score=self.order_group_score,
            total=self.total_score,
        )

    @property
    def children_amount(self) -> Decimal:
        """Sum of the candidate children's amounts."""
        return sum((child.amount for child in self.children), Decimal("0"))


@dataclass
class LinkSuggestion:
    """A match above the suggest threshold, shaped for user review."""

    parent: LinkedTransaction
    children: list[LinkedTransaction]
    confidence: int
    confidence_level: ConfidenceLevel
    match_scores: MatchScores
    reasons: list[str] = field(default_factory=list)

    @property
    def child_ids(self) -> list[str]:
        """Ids of the suggested children, in order."""
        return [child.id for child in self.children]


@dataclass
class CreateLinkRequest:
    """Request to link one or more children under a parent."""

    parent_transaction_id: str
    child_transaction_ids: list[str]
    link_type: LinkType = LinkType.MANUAL
    confidence: Optional[int] = None
    metadata: LinkMetadata = field(default_factory=LinkMetadata)


@dataclass
class UpdateLinkRequest:
    """Request to change link attributes on an already-linked child.

    Fields left as None are not changed.
    """

    transaction_id: str
    confidence: Optional[int] = None
    link_type: Optional[LinkType] = None
    metadata: Optional[LinkMetadata] = None


@dataclass
class LinkValidationResult:
    """Outcome of validating a link request.

    Errors block the link; warnings are shown to the user but do not.
    """

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class LinkOperationResponse:
    """Outcome of a create/update/remove link operation."""

    success: bool
    linked_count: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, *errors: str) -> "LinkOperationResponse":
        """Build a failed response carrying the given error messages."""
        return cls(success=False, linked_count=0, errors=list(errors))


@dataclass
class TransactionHierarchy:
    """A parent together with all of its linked children."""

    parent: LinkedTransaction
    children: list[LinkedTransaction]
    total_children: int
    total_amount: Decimal
    children_amount: Decimal

    @property
    def unallocated_amount(self) -> Decimal:
        """Part of the parent amount not covered by its children."""
        return self.total_amount - self.children_amount
