"""Link lifecycle management and persistence."""

from transaction_linker.linking.auto_linker import AutoLinker, AutoLinkResult
from transaction_linker.linking.service import LinkError, LinkService
from transaction_linker.linking.store import (
    InMemoryTransactionStore,
    JsonFileTransactionStore,
    StoreError,
    TransactionQuery,
    TransactionStore,
)
from transaction_linker.linking.validation import validate_link

__all__ = [
    "AutoLinker",
    "AutoLinkResult",
    "LinkService",
    "LinkError",
    "TransactionStore",
    "TransactionQuery",
    "InMemoryTransactionStore",
    "JsonFileTransactionStore",
    "StoreError",
    "validate_link",
]
