"""Transaction data models for linking and import."""

from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from transaction_linker.utils.date_utils import parse_date
from transaction_linker.utils.decimal_utils import round_money


class LinkType(Enum):
    """How a child transaction came to be linked to its parent."""

    AUTO = "auto"  # Created by the matcher above the auto-link threshold
    MANUAL = "manual"  # Created or confirmed by the user
    SUGGESTED = "suggested"  # Proposed by the matcher, pending review


@dataclass
class MatchScores:
    """Breakdown of a match score by component.

    Attributes:
        date_score: Date proximity points (0-40).
        amount_score: Amount agreement points (0-50).
        order_group_score: Shared order id points (0 or 10).
        total: Sum of the three components (0-100).
    """

    date_score: int = 0
    amount_score: int = 0
    order_group_score: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to a plain dictionary."""
        return {
            "date_score": self.date_score,
            "amount_score": self.amount_score,
            "order_group_score": self.order_group_score,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchScores":
        """Create from dictionary."""
        return cls(
            date_score=int(data.get("date_score", 0)),
            amount_score=int(data.get("amount_score", 0)),
            order_group_score=int(data.get("order_group_score", 0)),
            total=int(data.get("total", 0)),
        )


@dataclass
class LinkMetadata:
    """Structured metadata stored alongside a link on the child transaction.

    Attributes:
        match_scores: Score breakdown at the time the link was made.
        order_id: Originating marketplace order id.
        order_group_id: Group id when several items came from one order.
        user_notes: Free-text notes entered by the user.
        linked_at: ISO timestamp when the link was created.
        linked_by: User who created the link (manual links).
        updated_at: ISO timestamp of the last update_link call.
        tax_amount: Tax allocated to this item.
        shipping_amount: Shipping allocated to this item.
        original_confidence: Confidence before a user override.
        extra: Keys this model does not know about, kept verbatim.
    """

    match_scores: Optional[MatchScores] = None
    order_id: Optional[str] = None
    order_group_id: Optional[str] = None
    user_notes: Optional[str] = None
    linked_at: Optional[str] = None
    linked_by: Optional[str] = None
    updated_at: Optional[str] = None
    tax_amount: Optional[Decimal] = None
    shipping_amount: Optional[Decimal] = None
    original_confidence: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """Check whether no metadata has been recorded."""
        return not self.to_dict()

    def merged_with(self, other: "LinkMetadata") -> "LinkMetadata":
        """Return a copy with every field set on ``other`` taking precedence.

        Args:
            other: Metadata whose non-empty fields override this one.

        Returns:
            New merged LinkMetadata.
        """
        merged = self.to_dict()
        merged.update(other.to_dict())
        return LinkMetadata.from_dict(merged)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary, omitting unset fields."""
        data: dict[str, Any] = dict(self.extra)
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, MatchScores):
                value = value.to_dict()
            elif isinstance(value, Decimal):
                value = str(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "LinkMetadata":
        """Create from dictionary (e.g., a JSON column)."""
        if not data:
            return cls()

        known = {f.name for f in fields(cls)} - {"extra"}
        scores = data.get("match_scores")
        tax = data.get("tax_amount")
        shipping = data.get("shipping_amount")
        confidence = data.get("original_confidence")

        return cls(
            match_scores=MatchScores.from_dict(scores) if isinstance(scores, dict) else scores,
            order_id=data.get("order_id"),
            order_group_id=data.get("order_group_id"),
            user_notes=data.get("user_notes"),
            linked_at=data.get("linked_at"),
            linked_by=data.get("linked_by"),
            updated_at=data.get("updated_at"),
            tax_amount=Decimal(str(tax)) if tax is not None else None,
            shipping_amount=Decimal(str(shipping)) if shipping is not None else None,
            original_confidence=int(confidence) if confidence is not None else None,
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass
class LinkedTransaction:
    """A stored transaction, including the link fields carried by children.

    Linking is modelled as fields on the child rather than a join entity: a
    child points at its parent through ``parent_transaction_id`` and a parent
    is simply a transaction that others point at.

    Attributes:
        id: Opaque identifier.
        user_id: Owner reference.
        date: Transaction date.
        amount: Positive magnitude of the transaction.
        merchant: Merchant text as imported.
        description: Free-text description.
        is_income: True when money came in; the amount itself is unsigned.
        category_id: Optional category reference.
        account_id: Optional account reference.
        receipt_url: Optional receipt reference.
        order_id: Originating order id from import metadata.
        parent_transaction_id: Parent this transaction is linked to.
        link_confidence: Match confidence (0-100) of the link.
        link_type: How the link was made.
        link_metadata: Score breakdown, notes and audit timestamps.
    """

    id: str
    user_id: str
    date: date
    amount: Decimal
    merchant: str
    description: str = ""
    is_income: bool = False
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    receipt_url: Optional[str] = None
    order_id: Optional[str] = None

    # Link fields
    parent_transaction_id: Optional[str] = None
    link_confidence: Optional[int] = None
    link_type: Optional[LinkType] = None
    link_metadata: LinkMetadata = field(default_factory=LinkMetadata)

    @property
    def is_child(self) -> bool:
        """Whether this transaction is linked under a parent."""
        return self.parent_transaction_id is not None

    @property
    def is_linked(self) -> bool:
        """Whether any link state is recorded on this transaction."""
        return self.parent_transaction_id is not None or self.link_type is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "merchant": self.merchant,
            "description": self.description,
            "is_income": self.is_income,
            "category_id": self.category_id,
            "account_id": self.account_id,
            "receipt_url": self.receipt_url,
            "order_id": self.order_id,
            "parent_transaction_id": self.parent_transaction_id,
            "link_confidence": self.link_confidence,
            "link_type": self.link_type.value if self.link_type else None,
            "link_metadata": self.link_metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkedTransaction":
        """Create a LinkedTransaction from a stored row.

        Args:
            data: Dictionary with at least id, user_id, date, amount and merchant.

        Returns:
            A new LinkedTransaction instance.
        """
        raw_date = data["date"]
        txn_date = raw_date if isinstance(raw_date, date) else parse_date(str(raw_date))
        link_type = data.get("link_type")
        confidence = data.get("link_confidence")

        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            date=txn_date,
            amount=round_money(abs(Decimal(str(data["amount"])))),
            merchant=str(data.get("merchant") or ""),
            description=str(data.get("description") or ""),
            is_income=bool(data.get("is_income", False)),
            category_id=data.get("category_id"),
            account_id=data.get("account_id"),
            receipt_url=data.get("receipt_url"),
            order_id=data.get("order_id"),
            parent_transaction_id=data.get("parent_transaction_id"),
            link_confidence=int(confidence) if confidence is not None else None,
            link_type=LinkType(link_type) if link_type else None,
            link_metadata=LinkMetadata.from_dict(data.get("link_metadata")),
        )

    def __repr__(self) -> str:
        return (
            f"LinkedTransaction(id={self.id!r}, date={self.date}, "
            f"merchant={self.merchant[:30]!r}, amount={self.amount}, "
            f"parent={self.parent_transaction_id!r})"
        )


@dataclass
class ParsedTransaction:
    """Normalized output of any CSV parser, ready to be persisted.

    Attributes:
        date: Transaction calendar date.
        amount: Positive magnitude, rounded to cents.
        merchant: Merchant name ("Unknown" when the source had none).
        description: Free-text description.
        is_income: True for money in.
        category: Category label supplied by the source, if any.
        subcategory: Second category level supplied by the source, if any.
        order_id: Originating order id (marketplace imports only).
    """

    date: date
    amount: Decimal
    merchant: str
    description: str = ""
    is_income: bool = False
    category: Optional[str] = None
    subcategory: Optional[str] = None
    order_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Export-boundary record consumed by report and persistence writers."""
        return {
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "merchant": self.merchant,
            "description": self.description,
            "is_income": self.is_income,
        }
