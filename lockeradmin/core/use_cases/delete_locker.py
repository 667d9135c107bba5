from __future__ import annotations

import logging

from lockeradmin.core.errors import ConfirmationRequired, ConnectivityError, NotFoundError
from lockeradmin.core.repositories.document_store import DocumentStore

logger = logging.getLogger(__name__)


class DeleteLockerUseCase:
    def __init__(self, *, store: DocumentStore, collection: str) -> None:
        self._store = store
        self._collection = collection

    def execute(self, *, locker_id: str, confirm: bool) -> None:
        """
        Irreversibly remove a locker. Nothing is sent to the store unless the
        operator confirmed the deletion.
        """
        if not confirm:
            raise ConfirmationRequired(f"Deleting locker {locker_id!r} requires confirmation")

        try:
            if self._store.get(self._collection, locker_id) is None:
                raise NotFoundError("Locker not found")
            self._store.delete(self._collection, locker_id)
        except ConnectivityError:
            logger.exception("Failed to delete locker %s", locker_id)
            raise

        logger.info("Deleted locker %s", locker_id)
