"""Data models for transactions, links and match candidates."""

from transaction_linker.models.link import (
    ConfidenceLevel,
    CreateLinkRequest,
    LinkOperationResponse,
    LinkSuggestion,
    LinkValidationResult,
    MatchCandidate,
    Recommendation,
    TransactionHierarchy,
    UpdateLinkRequest,
)
from transaction_linker.models.transaction import (
    LinkedTransaction,
    LinkMetadata,
    LinkType,
    MatchScores,
    ParsedTransaction,
)

__all__ = [
    "LinkedTransaction",
    "LinkMetadata",
    "LinkType",
    "MatchScores",
    "ParsedTransaction",
    "ConfidenceLevel",
    "Recommendation",
    "MatchCandidate",
    "LinkSuggestion",
    "CreateLinkRequest",
    "UpdateLinkRequest",
    "LinkValidationResult",
    "LinkOperationResponse",
    "TransactionHierarchy",
]
