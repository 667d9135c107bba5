from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

from lockeradmin.core.repositories.document_store import DocumentSnapshot, DocumentStore, ListenerRegistration

logger = logging.getLogger(__name__)

T = TypeVar("T")

Consumer = Callable[[list[T]], None]


class CollectionSubscriber(Generic[T]):
    """
    Keeps a mapped, full snapshot of one collection in memory.

    The store pushes the whole collection on every change; each document is
    mapped into its entity and the resulting list is republished to consumers.
    There is no reconnect: after a subscription error ``loading`` turns False,
    ``error`` is set and the last snapshot (possibly stale) stays available.
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        collection: str,
        mapper: Callable[[DocumentSnapshot], T],
        order_by: str | None = None,
        key: Callable[[T], str] | None = None,
    ) -> None:
        self._store = store
        self._collection = collection
        self._mapper = mapper
        self._order_by = order_by
        self._key = key
        self._registration: ListenerRegistration | None = None
        self._consumers: list[Consumer] = []

        self.items: list[T] = []
        self.loading = True
        self.error: Exception | None = None

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def active(self) -> bool:
        return self._registration is not None and self._registration.active

    @property
    def consumer_count(self) -> int:
        return len(self._consumers)

    def start(self) -> None:
        if self.active:
            return
        self.loading = True
        self.error = None
        self._registration = self._store.on_snapshot(
            self._collection,
            self._on_snapshot,
            self._on_error,
            order_by=self._order_by,
        )

    def stop(self) -> None:
        if self._registration is not None:
            self._registration.unsubscribe()
            self._registration = None

    def add_listener(self, consumer: Consumer) -> Callable[[], None]:
        """
        Register ``consumer`` for every future snapshot and return a callable that
        removes it again. A consumer added after the first snapshot is called once
        straight away with the current items.
        """
        self._consumers.append(consumer)
        if not self.loading:
            self._call(consumer, list(self.items))

        def _remove() -> None:
            if consumer in self._consumers:
                self._consumers.remove(consumer)

        return _remove

    def find(self, item_id: str) -> T | None:
        if self._key is None:
            raise TypeError(f"Subscriber for {self._collection!r} has no key function")
        for item in self.items:
            if self._key(item) == item_id:
                return item
        return None

    async def stream(self) -> AsyncIterator[list[T]]:
        """
        Yield every snapshot as it arrives, starting with the current one if loaded.
        Closing the iterator releases its listener; an iterator that is dropped
        without being closed keeps buffering snapshots until it is collected.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[list[T]] = asyncio.Queue()
        remove = self.add_listener(lambda items: loop.call_soon_threadsafe(queue.put_nowait, items))
        try:
            while True:
                yield await queue.get()
        finally:
            remove()

    def _on_snapshot(self, docs: list[DocumentSnapshot]) -> None:
        items: list[T] = []
        for doc in docs:
            try:
                items.append(self._mapper(doc))
            except Exception:
                logger.exception("Skipping unmappable document %s/%s", self._collection, doc.doc_id)

        self.items = items
        self.loading = False
        self.error = None
        for consumer in list(self._consumers):
            self._call(consumer, list(items))

    def _on_error(self, error: Exception) -> None:
        logger.error("Subscription to %r failed: %s", self._collection, error)
        self.loading = False
        self.error = error

    def _call(self, consumer: Consumer, items: list[T]) -> None:
        try:
            consumer(items)
        except Exception:
            logger.exception("Consumer of %r raised", self._collection)
