from .base import (
    DocumentNotFoundError,
    DocumentStore,
    PermissionDeniedError,
    StoreError,
    StoreTransportError,
    StoreUnavailableError,
    StoreWriteError,
    Subscription,
    SubscriptionClosed,
    Transaction,
)
from .memory import InMemoryDocumentStore
from .sql import SqlDocumentStore
from .unavailable import UnavailableDocumentStore


def create_store(database_url: str) -> DocumentStore:
    """Build the store for a DATABASE_URL ("memory://" keeps data in-process)."""
    url = (database_url or "").strip()
    if not url:
        return UnavailableDocumentStore()
    if url == "memory://":
        return InMemoryDocumentStore()
    return SqlDocumentStore.from_url(url)


__all__ = [
    "DocumentNotFoundError",
    "DocumentStore",
    "InMemoryDocumentStore",
    "PermissionDeniedError",
    "SqlDocumentStore",
    "StoreError",
    "StoreTransportError",
    "StoreUnavailableError",
    "StoreWriteError",
    "Subscription",
    "SubscriptionClosed",
    "Transaction",
    "UnavailableDocumentStore",
    "create_store",
]
