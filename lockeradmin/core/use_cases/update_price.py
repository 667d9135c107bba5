from __future__ import annotations

import logging

from lockeradmin.core.errors import ConnectivityError
from lockeradmin.core.repositories.document_store import DocumentStore
from lockeradmin.core.repositories.documents import price_update

logger = logging.getLogger(__name__)


class UpdatePriceUseCase:
    """
    Set one locker's hourly price. No bounds are enforced here; the API request
    model carries the same minimum as the dashboard input control.
    """

    def __init__(self, *, store: DocumentStore, collection: str) -> None:
        self._store = store
        self._collection = collection

    def execute(self, *, locker_id: str, price_per_hour: float) -> None:
        try:
            self._store.update(self._collection, locker_id, price_update(price_per_hour))
        except ConnectivityError:
            logger.exception("Failed to update price of locker %s", locker_id)
            raise
        logger.info("Locker %s price set to %.2f/h", locker_id, price_per_hour)
