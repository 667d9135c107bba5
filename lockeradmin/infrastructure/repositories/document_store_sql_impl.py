from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lockeradmin.core.entities.timestamps import to_instant, to_wire
from lockeradmin.core.errors import ConnectivityError, NotFoundError
from lockeradmin.core.repositories.document_store import (
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    DocumentStore,
    ErrorCallback,
    ListenerRegistration,
    SnapshotCallback,
)
from lockeradmin.infrastructure.models.models import DocumentModel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Listener:
    collection: str
    on_next: SnapshotCallback
    on_error: ErrorCallback
    order_by: str | None


class SqlDocumentStore(DocumentStore):
    """
    SQLAlchemy implementation of the document store.

    Every committed write pushes the full, ordered collection to each listener
    registered on that collection. Reads, writes and notifications share one
    lock, so listeners observe snapshots in commit order and an in-memory SQLite
    connection is never used by two threads at once.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._listeners: list[_Listener] = []

    # -----------------------------
    # Reads
    # -----------------------------
    def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        try:
            with self._lock, self._session_factory() as db:
                row = db.get(DocumentModel, (collection, doc_id))
                if row is None:
                    return None
                return DocumentSnapshot(doc_id=row.doc_id, data=dict(row.data))
        except SQLAlchemyError as e:
            raise ConnectivityError(f"Failed to read {collection}/{doc_id}: {e}") from e

    def list_documents(self, collection: str, *, order_by: str | None = None) -> list[DocumentSnapshot]:
        try:
            with self._lock, self._session_factory() as db:
                rows = db.scalars(
                    select(DocumentModel)
                    .where(DocumentModel.collection == collection)
                    .order_by(DocumentModel.doc_id)
                ).all()
                docs = [DocumentSnapshot(doc_id=row.doc_id, data=dict(row.data)) for row in rows]
        except SQLAlchemyError as e:
            raise ConnectivityError(f"Failed to list {collection}: {e}") from e

        if order_by:
            docs.sort(key=lambda d: _order_key(d.data.get(order_by)))
        return docs

    # -----------------------------
    # Writes
    # -----------------------------
    def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        with self._lock:
            now = self._clock()
            body = _encode(dict(data), now)
            self._write(collection, doc_id, lambda db, row: self._replace(db, row, collection, doc_id, body, now))
            self._notify(collection)

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            now = self._clock()
            changes = _encode(dict(fields), now)

            def _merge(db: Session, row: DocumentModel | None) -> None:
                if row is None:
                    raise NotFoundError(f"Document not found: {collection}/{doc_id}")
                row.data = {**row.data, **changes}
                row.update_time = now

            self._write(collection, doc_id, _merge)
            self._notify(collection)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            removed: list[bool] = []

            def _remove(db: Session, row: DocumentModel | None) -> None:
                if row is not None:
                    db.delete(row)
                    removed.append(True)

            self._write(collection, doc_id, _remove)
            if removed:
                self._notify(collection)

    @staticmethod
    def _replace(
        db: Session,
        row: DocumentModel | None,
        collection: str,
        doc_id: str,
        body: dict[str, Any],
        now: datetime,
    ) -> None:
        if row is None:
            row = DocumentModel(collection=collection, doc_id=doc_id)
            db.add(row)
        row.data = body
        row.update_time = now

    def _write(self, collection: str, doc_id: str, apply: Callable[[Session, DocumentModel | None], None]) -> None:
        try:
            with self._session_factory() as db:
                row = db.get(DocumentModel, (collection, doc_id))
                apply(db, row)
                db.commit()
        except SQLAlchemyError as e:
            raise ConnectivityError(f"Failed to write {collection}/{doc_id}: {e}") from e

    # -----------------------------
    # Subscriptions
    # -----------------------------
    def on_snapshot(
        self,
        collection: str,
        on_next: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        order_by: str | None = None,
    ) -> ListenerRegistration:
        listener = _Listener(collection=collection, on_next=on_next, on_error=on_error, order_by=order_by)
        with self._lock:
            self._listeners.append(listener)
            self._deliver(listener)
        return ListenerRegistration(_release=lambda: self._remove_listener(listener))

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return sum(1 for listener in self._listeners if listener.collection == collection)

    def _remove_listener(self, listener: _Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners):
            if listener.collection == collection:
                self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        try:
            docs = self.list_documents(listener.collection, order_by=listener.order_by)
        except ConnectivityError as e:
            listener.on_error(e)
            return
        try:
            listener.on_next(docs)
        except Exception:
            logger.exception("Snapshot listener on %r raised", listener.collection)


def _encode(value: Any, now: datetime) -> Any:
    """Resolve server timestamps and make the body JSON-serialisable."""
    if value is SERVER_TIMESTAMP:
        return to_wire(now)
    if isinstance(value, datetime):
        return to_wire(value)
    if isinstance(value, dict):
        return {k: _encode(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v, now) for v in value]
    return value


def _order_key(value: Any) -> tuple:
    """Total order across mixed field types; documents missing the field sort last."""
    if value is None:
        return (1, 0, "")
    if isinstance(value, bool):
        return (0, 0, int(value))
    if isinstance(value, (int, float)):
        return (0, 1, value)
    if isinstance(value, dict):
        instant = to_instant(value)
        if instant is not None:
            return (0, 2, instant.timestamp())
        return (0, 4, "")
    if isinstance(value, str):
        return (0, 3, value)
    return (0, 4, "")
