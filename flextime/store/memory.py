"""
In-process document store.

Used by the test-suite and for local runs without a database. The
`deny_reads` / `fail_writes` switches reproduce the permission-denied and
transport failures a hosted store can return.
"""
from __future__ import annotations

import copy
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from flextime.store.base import (
    DocKey,
    DocumentStore,
    PermissionDeniedError,
    StoreWriteError,
    Transaction,
)


class _MemoryTransaction(Transaction):
    def __init__(self, store: "InMemoryDocumentStore") -> None:
        super().__init__()
        self._store = store

    def _load(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        return self._store.get(collection, doc_id)


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, deny_reads: bool = False, fail_writes: bool = False) -> None:
        super().__init__()
        self._docs: dict[DocKey, dict[str, Any]] = {}
        self.deny_reads = deny_reads
        self.fail_writes = fail_writes

    def _check_read(self) -> None:
        if self.deny_reads:
            raise PermissionDeniedError("Missing or insufficient permissions.")

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            self._check_read()
            data = self._docs.get((collection, doc_id))
            return copy.deepcopy(data) if data is not None else None

    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            self._check_read()
            # Documents without the ordering field are left out of ordered queries.
            docs = [
                copy.deepcopy(data)
                for (coll, _), data in self._docs.items()
                if coll == collection and data.get(order_by) is not None
            ]
        docs.sort(key=lambda d: d[order_by], reverse=descending)
        return docs[:limit] if limit is not None else docs

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            tx = _MemoryTransaction(self)
            yield tx
            if not tx.writes:
                return
            if self.fail_writes:
                raise StoreWriteError("Simulated write failure.")
            for key, data in tx.writes.items():
                self._docs[key] = copy.deepcopy(data)
            self._publish(tx.writes)
