"""Link lifecycle operations: validate, create, update, remove and suggest."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional, Sequence

from transaction_linker.config import Config
from transaction_linker.linking.store import StoreError, TransactionQuery, TransactionStore
from transaction_linker.linking.validation import validate_link
from transaction_linker.matching.matcher import TransactionMatcher
from transaction_linker.matching.merchant_filter import is_linkable_marketplace_charge
from transaction_linker.matching.scorer import (
    MAX_AMOUNT_SCORE,
    MAX_DATE_SCORE,
    extract_order_id,
)
from transaction_linker.models.link import (
    CreateLinkRequest,
    LinkOperationResponse,
    LinkSuggestion,
    LinkValidationResult,
    MatchCandidate,
    TransactionHierarchy,
    UpdateLinkRequest,
)
from transaction_linker.models.transaction import LinkedTransaction, LinkMetadata
from transaction_linker.utils.decimal_utils import sum_amounts
from transaction_linker.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)


class LinkError(Exception):
    """Exception raised when a link lookup cannot be completed."""

    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_reasons(candidate: MatchCandidate) -> list[str]:
    """Human-readable explanation of a match score."""
    reasons = [
        f"Date proximity: {candidate.date_score}/{MAX_DATE_SCORE} points",
        f"Amount match: {candidate.amount_score}/{MAX_AMOUNT_SCORE} points",
    ]
    if candidate.order_group_score:
        order_id = extract_order_id(candidate.children[0])
        reasons.append(f"All items from order {order_id}")
    return reasons


class LinkService:
    """Manages parent/child links between transactions.

    A child points at its parent through parent_transaction_id. Linking is
    one level deep: a child is never a parent, and a child has exactly one
    parent until it is unlinked. Every mutation re-reads current state from
    the store and validates it immediately before writing.
    """

    def __init__(
        self,
        store: TransactionStore,
        config: Optional[Config] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize link service.

        Args:
            store: Transaction store to read and update.
            config: Application configuration (defaults apply when None).
            clock: Source of audit timestamps.
        """
        self.store = store
        self.config = config or Config()
        self.clock = clock
        self.matcher = TransactionMatcher(self.config.matching)

    def _timestamp(self) -> str:
        return self.clock().isoformat()

    def validate_link(self, request: CreateLinkRequest) -> LinkValidationResult:
        """Validate a link request against the current store state.

        Args:
            request: The link request.

        Returns:
            LinkValidationResult with errors and warnings.
        """
        parent = self.store.get(request.parent_transaction_id)
        children = self.store.get_many(dict.fromkeys(request.child_transaction_ids))
        parents_with_children = {
            child.id for child in children if self.store.find_children(child.id)
        }
        return validate_link(
            request,
            parent,
            children,
            parents_with_children=parents_with_children,
            config=self.config.linking,
        )

    def create_link(self, request: CreateLinkRequest) -> LinkOperationResponse:
        """Link children under a parent.

        All children are updated in one all-or-nothing store call.

        Args:
            request: The link request.

        Returns:
            LinkOperationResponse; validation warnings are passed along.
        """
        child_ids = list(request.child_transaction_ids)
        with LogContext(
            logger,
            "create_link",
            parent_id=request.parent_transaction_id,
            child_count=len(child_ids),
            link_type=request.link_type.value,
        ):
            try:
                validation = self.validate_link(request)
            except StoreError as e:
                return LinkOperationResponse.failure(str(e))

            if not validation.valid:
                return LinkOperationResponse(
                    success=False, errors=validation.errors, warnings=validation.warnings
                )

            metadata = replace(request.metadata, linked_at=self._timestamp())
            changes: dict[str, Any] = {
                "parent_transaction_id": request.parent_transaction_id,
                "link_type": request.link_type,
                "link_confidence": request.confidence,
                "link_metadata": metadata,
            }

            try:
                updated = self.store.update_many(child_ids, changes)
            except StoreError as e:
                return LinkOperationResponse(
                    success=False, errors=[str(e)], warnings=validation.warnings
                )

            if len(updated) != len(child_ids):
                return LinkOperationResponse(
                    success=False,
                    linked_count=len(updated),
                    errors=[
                        f"Only {len(updated)} of {len(child_ids)} child transactions "
                        f"were linked to {request.parent_transaction_id}"
                    ],
                    warnings=validation.warnings,
                )

            logger.info(
                f"Linked {len(updated)} transactions to {request.parent_transaction_id} "
                f"({request.link_type.value})"
            )
            return LinkOperationResponse(
                success=True, linked_count=len(updated), warnings=validation.warnings
            )

    def remove_link(self, transaction_id: str) -> LinkOperationResponse:
        """Unlink a single child. Siblings are not affected.

        Args:
            transaction_id: Child transaction id.

        Returns:
            LinkOperationResponse.
        """
        with LogContext(logger, "remove_link", transaction_id=transaction_id):
            try:
                txn = self.store.get(transaction_id)
                if txn is None:
                    return LinkOperationResponse.failure(f"Transaction not found: {transaction_id}")
                if not txn.is_linked:
                    return LinkOperationResponse.failure(f"Transaction {transaction_id} is not linked")

                self.store.update_many(
                    [transaction_id],
                    {
                        "parent_transaction_id": None,
                        "link_confidence": None,
                        "link_type": None,
                        "link_metadata": LinkMetadata(),
                    },
                )
            except StoreError as e:
                return LinkOperationResponse.failure(str(e))

            logger.info(f"Removed link {transaction_id} -> {txn.parent_transaction_id}")
            return LinkOperationResponse(success=True, linked_count=1)

    def update_link(self, request: UpdateLinkRequest) -> LinkOperationResponse:
        """Change confidence, type or metadata on an already-linked child.

        The parent is never changed. When the confidence or type changes,
        the confidence before the first such change is kept in metadata as
        original_confidence. Metadata is merged, and updated_at is stamped.

        Args:
            request: The update request.

        Returns:
            LinkOperationResponse.
        """
        if request.confidence is None and request.link_type is None and request.metadata is None:
            return LinkOperationResponse.failure("No link fields to update")
        if request.confidence is not None and not 0 <= request.confidence <= 100:
            return LinkOperationResponse.failure(
                f"Confidence must be between 0 and 100, got {request.confidence}"
            )

        with LogContext(logger, "update_link", transaction_id=request.transaction_id):
            try:
                txn = self.store.get(request.transaction_id)
                if txn is None:
                    return LinkOperationResponse.failure(
                        f"Transaction not found: {request.transaction_id}"
                    )
                if not txn.is_child:
                    return LinkOperationResponse.failure(
                        f"Transaction {request.transaction_id} is not linked"
                    )

                metadata = txn.link_metadata
                if request.metadata is not None:
                    metadata = metadata.merged_with(request.metadata)

                confidence_changed = (
                    request.confidence is not None and request.confidence != txn.link_confidence
                )
                type_changed = request.link_type is not None and request.link_type != txn.link_type
                if (
                    (confidence_changed or type_changed)
                    and metadata.original_confidence is None
                    and txn.link_confidence is not None
                ):
                    metadata = replace(metadata, original_confidence=txn.link_confidence)

                changes: dict[str, Any] = {
                    "link_metadata": replace(metadata, updated_at=self._timestamp())
                }
                if request.confidence is not None:
                    changes["link_confidence"] = request.confidence
                if request.link_type is not None:
                    changes["link_type"] = request.link_type

                self.store.update_many([request.transaction_id], changes)
            except StoreError as e:
                return LinkOperationResponse.failure(str(e))

            logger.info(f"Updated link on {request.transaction_id}: {sorted(changes)}")
            return LinkOperationResponse(success=True, linked_count=1)

    def bulk_create_links(
        self, requests: Sequence[CreateLinkRequest]
    ) -> list[LinkOperationResponse]:
        """Create several links, continuing past failures.

        Args:
            requests: Link requests, applied in order.

        Returns:
            One response per request, in the same order.
        """
        results = [self.create_link(request) for request in requests]
        failed = sum(1 for result in results if not result.success)
        logger.info(f"Bulk link: {len(results) - failed} created, {failed} failed")
        return results

    def get_linked_transactions(self, parent_id: str) -> TransactionHierarchy:
        """Return a parent with all of its children.

        Args:
            parent_id: Parent transaction id.

        Returns:
            TransactionHierarchy with totals.

        Raises:
            LinkError: If the parent does not exist or children cannot be read.
        """
        try:
            parent = self.store.get(parent_id)
        except StoreError as e:
            raise LinkError(f"Failed to fetch parent transaction: {e}") from e
        if parent is None:
            raise LinkError(f"Parent transaction not found: {parent_id}")

        try:
            children = self.store.find_children(parent_id)
        except StoreError as e:
            raise LinkError(f"Failed to fetch children: {e}") from e

        return TransactionHierarchy(
            parent=parent,
            children=children,
            total_children=len(children),
            total_amount=parent.amount,
            children_amount=sum_amounts(child.amount for child in children),
        )

    def get_link_suggestions(
        self, user_id: str, min_confidence: Optional[int] = None
    ) -> list[LinkSuggestion]:
        """Suggest links between a user's marketplace charges and line items.

        Parents are unlinked card charges that pass the marketplace filter;
        children are unlinked line items carrying the bare marketplace name.
        Transactions of other users are never considered.

        Args:
            user_id: Owner whose transactions are matched.
            min_confidence: Minimum total score (default: suggest threshold).

        Returns:
            Suggestions, best first.
        """
        threshold = (
            min_confidence if min_confidence is not None else self.config.matching.suggest_threshold
        )
        filter_config = self.config.merchant_filter

        parents = self._find_marketplace_charges(user_id)
        children = self.store.find(
            TransactionQuery(
                user_id=user_id,
                unlinked_only=True,
                merchant_equals=filter_config.line_item_merchant,
            )
        )
        logger.debug(
            f"Suggestion candidates: {len(parents)} charges, {len(children)} line items"
        )

        suggestions = [
            LinkSuggestion(
                parent=match.parent,
                children=match.children,
                confidence=match.total_score,
                confidence_level=match.confidence_level,
                match_scores=match.scores,
                reasons=build_reasons(match),
            )
            for match in self.matcher.find_matches(parents, children)
            if match.total_score >= threshold
        ]
        logger.info(f"Found {len(suggestions)} link suggestions (min confidence {threshold})")
        return suggestions

    def _find_marketplace_charges(self, user_id: str) -> list[LinkedTransaction]:
        """Unlinked charges of a user that pass the marketplace filter.

        The store narrows by brand token; the full filter runs on what it returns.
        """
        filter_config = self.config.merchant_filter
        found: dict[str, LinkedTransaction] = {}
        for token in filter_config.brand_tokens:
            query = TransactionQuery(
                user_id=user_id,
                unlinked_only=True,
                merchant_contains=token,
                merchant_not_equals=filter_config.line_item_merchant,
            )
            for txn in self.store.find(query):
                if is_linkable_marketplace_charge(txn.merchant, filter_config):
                    found[txn.id] = txn
        return sorted(found.values(), key=lambda txn: (txn.date, txn.id))

    def find_candidate_transactions(
        self, parent: LinkedTransaction, window_days: Optional[int] = None
    ) -> list[LinkedTransaction]:
        """List unlinked transactions near a parent's date, for manual linking.

        Args:
            parent: The prospective parent.
            window_days: Days either side of the parent date
                (default: linking.candidate_window_days).

        Returns:
            The owner's unlinked transactions in the window, oldest first.
        """
        if window_days is None:
            window_days = self.config.linking.candidate_window_days
        start: date = parent.date - timedelta(days=window_days)
        end: date = parent.date + timedelta(days=window_days)

        return self.store.find(
            TransactionQuery(
                user_id=parent.user_id,
                unlinked_only=True,
                start_date=start,
                end_date=end,
                exclude_id=parent.id,
            )
        )
