"""
Document store contract.

A store holds JSON documents addressed by (collection, doc_id) and offers
the primitives the flex-time services need:

  get(collection, doc_id)                       -> dict | None
  set(collection, doc_id, data, merge=False)    create / overwrite / deep-merge
  update(collection, doc_id, fields)            field update, dotted paths allowed
  query(collection, order_by, descending, limit)
  transaction()                                 serialized read-modify-write
  watch(collection, doc_id, listener)           -> unsubscribe callable
  subscribe(collection, doc_id)                 -> Subscription (snapshot stream)

Every primitive may raise a StoreError subclass. Change notifications are
delivered in commit order to listeners registered in this process.
"""
from __future__ import annotations

import copy
import logging
import queue
import threading
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, Iterator, Optional

logger = logging.getLogger(__name__)

DocKey = tuple[str, str]
Listener = Callable[[Optional[dict[str, Any]]], None]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StoreError(Exception):
    """Base class for every storage failure."""


class StoreUnavailableError(StoreError):
    """No store is configured."""


class PermissionDeniedError(StoreError):
    """The store refused the operation for the current caller."""


class DocumentNotFoundError(StoreError):
    """A field update targeted a document that does not exist."""


class StoreTransportError(StoreError):
    """The store could not be reached or the statement failed."""


class StoreWriteError(StoreTransportError):
    """A write or transaction commit failed; nothing was applied."""


class SubscriptionClosed(Exception):
    """Raised by Subscription.get() once the subscription is closed."""


# ---------------------------------------------------------------------------
# Document helpers
# ---------------------------------------------------------------------------

def merge_documents(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge `patch` into a copy of `base`; nested dicts merge key by key."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_field_updates(data: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Apply `{"a.b": value}` style updates to a copy of `data`."""
    updated = copy.deepcopy(data)
    for path, value in fields.items():
        parts = path.split(".")
        target = updated
        for part in parts[:-1]:
            nested = target.get(part)
            if not isinstance(nested, dict):
                nested = {}
                target[part] = nested
            target = nested
        target[parts[-1]] = copy.deepcopy(value)
    return updated


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------

class Transaction(ABC):
    """Buffers writes; the owning store applies them atomically on commit.

    Reads see the transaction's own pending writes.
    """

    def __init__(self) -> None:
        self.writes: dict[DocKey, dict[str, Any]] = {}

    @abstractmethod
    def _load(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        key = (collection, doc_id)
        if key in self.writes:
            return copy.deepcopy(self.writes[key])
        return self._load(collection, doc_id)

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        if merge:
            current = self.get(collection, doc_id) or {}
            data = merge_documents(current, data)
        self.writes[(collection, doc_id)] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        current = self.get(collection, doc_id)
        if current is None:
            raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist")
        self.writes[(collection, doc_id)] = apply_field_updates(current, fields)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class DocumentStore(ABC):
    def __init__(self) -> None:
        # Guards writes and listener bookkeeping together so notifications
        # leave in commit order and a new watcher never misses a commit.
        self._lock = threading.RLock()
        self._listeners: dict[DocKey, list[Listener]] = {}

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Transaction]:
        ...

    def ping(self) -> bool:
        return True

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        with self.transaction() as tx:
            tx.set(collection, doc_id, data, merge=merge)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with self.transaction() as tx:
            tx.update(collection, doc_id, fields)

    # --- change notification ---

    def watch(self, collection: str, doc_id: str, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the current snapshot now and after every commit.

        Raises StoreError if the initial read fails; nothing is registered then.
        """
        key = (collection, doc_id)
        with self._lock:
            current = self.get(collection, doc_id)
            self._listeners.setdefault(key, []).append(listener)
            listener(current)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(key, None)

        return unsubscribe

    def subscribe(self, collection: str, doc_id: str) -> "Subscription":
        return Subscription(self, collection, doc_id)

    def _publish(self, writes: dict[DocKey, dict[str, Any]]) -> None:
        with self._lock:
            for key, data in writes.items():
                for listener in list(self._listeners.get(key, ())):
                    try:
                        listener(copy.deepcopy(data))
                    except Exception:
                        logger.exception("Listener for %s/%s failed", *key)


class Subscription:
    """Closable stream of snapshots for one document, in commit order.

    The first item is the state at subscription time (None if absent).
    """

    _CLOSED = object()

    def __init__(self, store: DocumentStore, collection: str, doc_id: str) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._unsubscribe = store.watch(collection, doc_id, self._queue.put)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, timeout: Optional[float] = None) -> Optional[dict[str, Any]]:
        """Next snapshot; raises queue.Empty on timeout, SubscriptionClosed after close()."""
        if self._closed and self._queue.empty():
            raise SubscriptionClosed()
        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            raise SubscriptionClosed()
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[Optional[dict[str, Any]]]:
        while True:
            try:
                yield self.get()
            except SubscriptionClosed:
                return

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
