"""Store used when DATABASE_URL is empty: every primitive fails the same way."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from flextime.store.base import DocumentStore, StoreUnavailableError, Transaction

_MESSAGE = "Storage is not configured."


class UnavailableDocumentStore(DocumentStore):
    def ping(self) -> bool:
        return False

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        raise StoreUnavailableError(_MESSAGE)

    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        raise StoreUnavailableError(_MESSAGE)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        raise StoreUnavailableError(_MESSAGE)
        yield  # pragma: no cover
