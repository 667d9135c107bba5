from __future__ import annotations

import logging
from dataclasses import dataclass

from lockeradmin.core.entities.locker import DoorStatus, LockSize
from lockeradmin.core.errors import ConnectivityError, ValidationError
from lockeradmin.core.repositories.document_store import DocumentStore
from lockeradmin.core.repositories.documents import new_locker_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateLockerCommand:
    locker_id: str
    label: str = ""
    location: str = ""
    status: str = DoorStatus.AVAILABLE.value
    price_per_hour: float = 0.0
    size: LockSize | None = None


class CreateLockerUseCase:
    """
    Write a new locker document keyed by its identifier. Whatever the form says,
    a new locker starts locked and unreserved.
    """

    def __init__(self, *, store: DocumentStore, collection: str) -> None:
        self._store = store
        self._collection = collection

    def execute(self, command: CreateLockerCommand) -> str:
        locker_id = command.locker_id.strip()
        if not locker_id:
            raise ValidationError("Locker ID is required")

        body = new_locker_document(
            label=command.label.strip() or locker_id,
            location=command.location.strip(),
            status=command.status.strip() or DoorStatus.AVAILABLE.value,
            price_per_hour=command.price_per_hour,
            size=command.size,
        )
        try:
            self._store.set(self._collection, locker_id, body)
        except ConnectivityError:
            logger.exception("Failed to create locker %s", locker_id)
            raise

        logger.info("Created locker %s", locker_id)
        return locker_id
