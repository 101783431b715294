"""Persistence boundary for linkable transactions."""

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional

from transaction_linker.models.transaction import LinkedTransaction
from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)

# Only link fields may be changed through update_many()
LINK_FIELDS = frozenset(
    {"parent_transaction_id", "link_confidence", "link_type", "link_metadata"}
)


class StoreError(Exception):
    """Exception raised by a transaction store."""

    pass


@dataclass
class TransactionQuery:
    """Filters for TransactionStore.find(). Unset filters match everything.

    Attributes:
        user_id: Owner to restrict to.
        unlinked_only: Only transactions without a parent.
        merchant_contains: Case-insensitive substring of the merchant.
        merchant_equals: Whole merchant match, ignoring case and surrounding spaces.
        merchant_not_equals: Whole merchant to exclude, compared the same way.
        start_date: Earliest date, inclusive.
        end_date: Latest date, inclusive.
        exclude_id: Transaction id to leave out.
    """

    user_id: Optional[str] = None
    unlinked_only: bool = False
    merchant_contains: Optional[str] = None
    merchant_equals: Optional[str] = None
    merchant_not_equals: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    exclude_id: Optional[str] = None

    def matches(self, txn: LinkedTransaction) -> bool:
        """Check whether a transaction passes every filter."""
        if self.user_id is not None and txn.user_id != self.user_id:
            return False
        if self.unlinked_only and txn.parent_transaction_id is not None:
            return False
        if (
            self.merchant_contains is not None
            and self.merchant_contains.lower() not in txn.merchant.lower()
        ):
            return False
        merchant = txn.merchant.strip().lower()
        if self.merchant_equals is not None and merchant != self.merchant_equals.strip().lower():
            return False
        if (
            self.merchant_not_equals is not None
            and merchant == self.merchant_not_equals.strip().lower()
        ):
            return False
        if self.start_date is not None and txn.date < self.start_date:
            return False
        if self.end_date is not None and txn.date > self.end_date:
            return False
        if self.exclude_id is not None and txn.id == self.exclude_id:
            return False
        return True


class TransactionStore(ABC):
    """Abstract store of LinkedTransaction records.

    Implementations return copies, so callers never mutate stored state
    except through update_many().
    """

    @abstractmethod
    def get(self, transaction_id: str) -> Optional[LinkedTransaction]:
        """Fetch one transaction, or None if it does not exist."""
        pass

    @abstractmethod
    def get_many(self, transaction_ids: Iterable[str]) -> list[LinkedTransaction]:
        """Fetch the transactions that exist among the given ids, in request order."""
        pass

    @abstractmethod
    def update_many(
        self, transaction_ids: list[str], changes: dict[str, Any]
    ) -> list[LinkedTransaction]:
        """Apply the same link-field changes to several transactions.

        All-or-nothing: either every transaction is updated or none is.

        Args:
            transaction_ids: Transactions to update.
            changes: Link field names mapped to their new values.

        Returns:
            The updated transactions.

        Raises:
            StoreError: If a transaction is missing, a field is not a link
                field, or the change cannot be persisted.
        """
        pass

    @abstractmethod
    def find(self, query: TransactionQuery) -> list[LinkedTransaction]:
        """Return transactions matching a query, ordered by date then id."""
        pass

    def find_children(self, parent_id: str) -> list[LinkedTransaction]:
        """Return every transaction linked under a parent."""
        return [
            txn for txn in self.find(TransactionQuery())
            if txn.parent_transaction_id == parent_id
        ]


class InMemoryTransactionStore(TransactionStore):
    """Dictionary-backed store, used by tests and as the base of the JSON store."""

    def __init__(self, transactions: Optional[Iterable[LinkedTransaction]] = None):
        self._rows: dict[str, LinkedTransaction] = {}
        for txn in transactions or []:
            self.add(txn)

    def __len__(self) -> int:
        return len(self._rows)

    def add(self, transaction: LinkedTransaction) -> None:
        """Insert or replace a transaction.

        Raises:
            StoreError: If the transaction links to itself.
        """
        if transaction.parent_transaction_id == transaction.id:
            raise StoreError(f"Transaction {transaction.id} cannot be its own parent")
        self._rows[transaction.id] = copy.deepcopy(transaction)

    def get(self, transaction_id: str) -> Optional[LinkedTransaction]:
        txn = self._rows.get(transaction_id)
        return copy.deepcopy(txn) if txn is not None else None

    def get_many(self, transaction_ids: Iterable[str]) -> list[LinkedTransaction]:
        return [
            copy.deepcopy(self._rows[txn_id])
            for txn_id in transaction_ids
            if txn_id in self._rows
        ]

    def update_many(
        self, transaction_ids: list[str], changes: dict[str, Any]
    ) -> list[LinkedTransaction]:
        unknown = set(changes) - LINK_FIELDS
        if unknown:
            raise StoreError(f"Cannot update non-link fields: {', '.join(sorted(unknown))}")

        missing = [txn_id for txn_id in transaction_ids if txn_id not in self._rows]
        if missing:
            raise StoreError(f"Transaction not found: {', '.join(missing)}")

        # Build every updated row before touching stored state
        updated = {
            txn_id: replace(self._rows[txn_id], **copy.deepcopy(changes))
            for txn_id in transaction_ids
        }
        for txn_id, txn in updated.items():
            if txn.parent_transaction_id == txn_id:
                raise StoreError(f"Transaction {txn_id} cannot be its own parent")

        previous = {txn_id: self._rows[txn_id] for txn_id in updated}
        self._rows.update(updated)
        try:
            self._commit()
        except StoreError:
            self._rows.update(previous)
            raise

        logger.debug(f"Updated {len(updated)} transactions: {sorted(changes)}")
        return [copy.deepcopy(updated[txn_id]) for txn_id in transaction_ids]

    def find(self, query: TransactionQuery) -> list[LinkedTransaction]:
        matches = [txn for txn in self._rows.values() if query.matches(txn)]
        matches.sort(key=lambda t: (t.date, t.id))
        return [copy.deepcopy(txn) for txn in matches]

    def _commit(self) -> None:
        """Persist pending changes. Nothing to do in memory."""
        pass


class JsonFileTransactionStore(InMemoryTransactionStore):
    """Store backed by a JSON file.

    The file holds {"transactions": [...]} with one LinkedTransaction.to_dict()
    record per entry. Every successful update_many() rewrites the file.
    """

    def __init__(self, path: Path):
        """Load transactions from a JSON file.

        Args:
            path: Path to the JSON file. A missing file starts an empty store.

        Raises:
            StoreError: If the file exists but cannot be read or parsed.
        """
        super().__init__()
        self.path = path
        if path.exists():
            for txn in self._load(path):
                self.add(txn)
            logger.info(f"Loaded {len(self)} transactions from {path}")
        else:
            logger.warning(f"Store file not found, starting empty: {path}")

    @staticmethod
    def _load(path: Path) -> list[LinkedTransaction]:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Could not read {path}: {e}") from e

        records = data.get("transactions") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise StoreError(f"Expected a list of transactions in {path}")

        try:
            return [LinkedTransaction.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise StoreError(f"Invalid transaction record in {path}: {e}") from e

    def save(self) -> None:
        """Write every transaction back to the JSON file.

        Raises:
            StoreError: If the file cannot be written.
        """
        records = [txn.to_dict() for txn in self.find(TransactionQuery())]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"transactions": records}, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

    def _commit(self) -> None:
        self.save()
