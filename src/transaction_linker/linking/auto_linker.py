"""Automatic linking of marketplace charges to their line items after an import."""

from dataclasses import dataclass, field
from typing import Optional

from transaction_linker.linking.service import LinkService
from transaction_linker.linking.store import StoreError
from transaction_linker.matching.scorer import recommend
from transaction_linker.models.link import CreateLinkRequest, LinkSuggestion, Recommendation
from transaction_linker.models.transaction import LinkMetadata, LinkType
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class AutoLinkResult:
    """Summary of an auto-link run.

    Attributes:
        success: True when every high-confidence match was linked.
        total_matches: Suggestions at or above the suggest threshold.
        auto_linked_count: Links created.
        suggested_count: Matches left for user review.
        errors: One message per failed auto-link.
        auto_linked: Suggestions that were linked.
        suggested: Suggestions left for review.
    """

    success: bool
    total_matches: int = 0
    auto_linked_count: int = 0
    suggested_count: int = 0
    errors: list[str] = field(default_factory=list)
    auto_linked: list[LinkSuggestion] = field(default_factory=list)
    suggested: list[LinkSuggestion] = field(default_factory=list)


class AutoLinker:
    """Links high-confidence matches and keeps the rest as suggestions.

    Matches at or above the auto-link threshold become "auto" links carrying
    their score breakdown; matches between the suggest and auto-link
    thresholds are returned for review.
    """

    def __init__(self, service: LinkService, dry_run: bool = False):
        """Initialize auto linker.

        Args:
            service: Link service used for suggestions and link creation.
            dry_run: If True, report what would be linked without linking.
        """
        self.service = service
        self.dry_run = dry_run

    @property
    def thresholds(self) -> tuple[int, int]:
        """(suggest_threshold, auto_link_threshold) from matching config."""
        matching = self.service.config.matching
        return matching.suggest_threshold, matching.auto_link_threshold

    def auto_link(self, user_id: str) -> AutoLinkResult:
        """Run automatic linking for one user.

        Args:
            user_id: Owner whose transactions are linked.

        Returns:
            AutoLinkResult summarizing links made and suggestions kept.
        """
        suggest_threshold, _ = self.thresholds
        try:
            suggestions = self.service.get_link_suggestions(user_id, suggest_threshold)
        except StoreError as e:
            logger.error(f"Auto-link could not load suggestions: {e}")
            return AutoLinkResult(success=False, errors=[str(e)])

        result = AutoLinkResult(success=True, total_matches=len(suggestions))
        if not suggestions:
            logger.info("Auto-link: no matches found")
            return result

        for suggestion in suggestions:
            action = recommend(suggestion.confidence, self.service.config.matching)
            if action is Recommendation.IGNORE:
                continue
            if action is Recommendation.SUGGEST:
                result.suggested.append(suggestion)
                continue

            if self.dry_run:
                result.auto_linked.append(suggestion)
                continue

            response = self.service.create_link(self._request_for(suggestion))
            if response.success:
                result.auto_linked.append(suggestion)
            else:
                result.errors.append(
                    f"Failed to auto-link {suggestion.parent.merchant} "
                    f"({suggestion.parent.id}): {', '.join(response.errors)}"
                )

        result.auto_linked_count = len(result.auto_linked)
        result.suggested_count = len(result.suggested)
        result.success = not result.errors

        logger.info(
            f"Auto-link{' (dry run)' if self.dry_run else ''}: "
            f"{result.auto_linked_count} linked, {result.suggested_count} suggested, "
            f"{len(result.errors)} failed"
        )
        return result

    def should_run(self, user_id: str) -> bool:
        """Check whether a user has anything worth auto-linking."""
        suggest_threshold, _ = self.thresholds
        try:
            return bool(self.service.get_link_suggestions(user_id, suggest_threshold))
        except StoreError as e:
            logger.warning(f"Could not check for link suggestions: {e}")
            return False

    @staticmethod
    def _request_for(suggestion: LinkSuggestion) -> CreateLinkRequest:
        order_ids = {child.order_id for child in suggestion.children}
        order_id: Optional[str] = order_ids.pop() if len(order_ids) == 1 else None
        return CreateLinkRequest(
            parent_transaction_id=suggestion.parent.id,
            child_transaction_ids=suggestion.child_ids,
            link_type=LinkType.AUTO,
            confidence=suggestion.confidence,
            metadata=LinkMetadata(match_scores=suggestion.match_scores, order_id=order_id),
        )
