"""Validation of link requests against the one-level linking rules."""

from collections import Counter
from typing import AbstractSet, Optional, Sequence

from transaction_linker.config import LinkingConfig
from transaction_linker.models.link import CreateLinkRequest, LinkValidationResult
from transaction_linker.models.transaction import LinkedTransaction
from transaction_linker.utils.decimal_utils import format_currency, sum_amounts
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)


def validate_link(
    request: CreateLinkRequest,
    parent: Optional[LinkedTransaction],
    children: Sequence[LinkedTransaction],
    parents_with_children: AbstractSet[str] = frozenset(),
    config: Optional[LinkingConfig] = None,
) -> LinkValidationResult:
    """Validate a link request before it is applied.

    All errors are collected so the user sees every problem at once.
    Warnings never make a request invalid.

    Rules:
    - at least one child, no duplicate child ids
    - parent and every child must exist
    - the parent must not itself be a child
    - no child may already be linked, or already be a parent
    - a transaction cannot link to itself
    - warn when the child total differs materially from the parent amount

    Args:
        request: The link request.
        parent: Current state of the parent, or None if it was not found.
        children: Current state of the children that were found.
        parents_with_children: Ids among the children that already have
            children of their own.
        config: Linking configuration (defaults apply when None).

    Returns:
        LinkValidationResult with errors and warnings.
    """
    config = config or LinkingConfig()
    errors: list[str] = []
    warnings: list[str] = []
    child_ids = request.child_transaction_ids

    if not child_ids:
        errors.append("At least one child transaction is required")

    for child_id, count in Counter(child_ids).items():
        if count > 1:
            errors.append(f"Duplicate child transaction: {child_id}")

    if request.confidence is not None and not 0 <= request.confidence <= 100:
        errors.append(f"Confidence must be between 0 and 100, got {request.confidence}")

    if parent is None:
        errors.append(f"Parent transaction not found: {request.parent_transaction_id}")
    elif parent.parent_transaction_id is not None:
        errors.append("Parent transaction is already a child of another transaction")

    found_ids = {child.id for child in children}
    for child_id in dict.fromkeys(child_ids):
        if child_id not in found_ids and child_id != request.parent_transaction_id:
            errors.append(f"Child transaction not found: {child_id}")

    for child in children:
        if child.id == request.parent_transaction_id:
            continue
        if child.parent_transaction_id is not None:
            errors.append(f"Child transaction {child.id} is already linked")
        if child.id in parents_with_children:
            errors.append(
                f"Child transaction {child.id} has its own children and cannot be linked"
            )

    if request.parent_transaction_id in child_ids:
        errors.append("Transaction cannot link to itself")

    if parent is not None and children:
        children_total = sum_amounts(
            child.amount for child in children if child.id != parent.id
        )
        difference = abs(parent.amount - children_total)
        if difference > parent.amount * config.amount_warning_ratio:
            warnings.append(
                f"Child total {format_currency(children_total)} differs from "
                f"parent amount {format_currency(parent.amount)}"
            )

    if errors:
        logger.debug(f"Link to {request.parent_transaction_id} rejected: {errors}")

    return LinkValidationResult(valid=not errors, errors=errors, warnings=warnings)
