"""
SQLAlchemy-backed document store (Postgres in production, SQLite in tests).

All documents live in the single `documents` table keyed by
(collection, doc_id). Transactions lock the touched rows (SELECT ... FOR
UPDATE where the backend supports it) and are additionally serialized by
the store's writer lock, so concurrent awards to the same week cannot
overwrite each other's increment.
"""
from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from flextime.db.base import Base, make_engine, make_session_factory
from flextime.models.document import Document
from flextime.store.base import (
    DocumentStore,
    StoreTransportError,
    StoreWriteError,
    Transaction,
)

logger = logging.getLogger(__name__)


class _SqlTransaction(Transaction):
    def __init__(self, session: Session) -> None:
        super().__init__()
        self._session = session

    def _load(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        row = self._session.get(Document, (collection, doc_id), with_for_update=True)
        return copy.deepcopy(row.data) if row is not None else None


class SqlDocumentStore(DocumentStore):
    def __init__(self, engine: Engine) -> None:
        super().__init__()
        self.engine = engine
        self._session_factory: sessionmaker = make_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlDocumentStore":
        return cls(make_engine(database_url))

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def ping(self) -> bool:
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        try:
            with self._session_factory() as session:
                row = session.get(Document, (collection, doc_id))
                return copy.deepcopy(row.data) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreTransportError(f"Could not read {collection}/{doc_id}") from exc

    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        # Ordered values are stored as strings (ISO timestamps / ids).
        sort_key = Document.data[order_by].as_string()
        stmt = (
            select(Document)
            .where(Document.collection == collection)
            .where(sort_key.is_not(None))
            .order_by(sort_key.desc() if descending else sort_key.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self._session_factory() as session:
                rows = session.scalars(stmt).all()
                return [copy.deepcopy(row.data) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreTransportError(f"Could not query {collection}") from exc

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            session: Session = self._session_factory()
            tx = _SqlTransaction(session)
            try:
                yield tx
                for (collection, doc_id), data in tx.writes.items():
                    row = session.get(Document, (collection, doc_id))
                    if row is None:
                        session.add(Document(collection=collection, doc_id=doc_id, data=data))
                    else:
                        row.data = data
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StoreWriteError("Transaction failed; no changes were applied.") from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
            self._publish(tx.writes)
