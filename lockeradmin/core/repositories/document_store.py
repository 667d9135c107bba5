from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any


class _ServerTimestamp:
    """Sentinel replaced by the store's own clock when a document is written."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    doc_id: str
    data: dict[str, Any]


SnapshotCallback = Callable[[list[DocumentSnapshot]], None]
ErrorCallback = Callable[[Exception], None]


@dataclass(slots=True)
class ListenerRegistration:
    """
    Handle returned by ``DocumentStore.on_snapshot``. The caller owns it and must
    call ``unsubscribe`` once it is no longer interested in the collection.
    """
    _release: Callable[[], None]
    active: bool = field(default=True)

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._release()


class DocumentStore(ABC):
    """
    Shared, schema-less document database with real-time change notifications.

    Writes are atomic per document only; there are no transactions and no
    version checks, so the last write to reach the store wins.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        raise NotImplementedError

    @abstractmethod
    def list_documents(self, collection: str, *, order_by: str | None = None) -> list[DocumentSnapshot]:
        raise NotImplementedError

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create or fully replace a document."""
        raise NotImplementedError

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` into an existing document. Raises NotFoundError if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_snapshot(
        self,
        collection: str,
        on_next: SnapshotCallback,
        on_error: ErrorCallback,
        *,
        order_by: str | None = None,
    ) -> ListenerRegistration:
        """
        Deliver the full current collection to ``on_next`` now and after every change.
        """
        raise NotImplementedError
