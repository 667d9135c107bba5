from __future__ import annotations

import logging
from dataclasses import dataclass

from lockeradmin.core.entities.locker import Locker, LockState
from lockeradmin.core.errors import ConnectivityError, NotFoundError
from lockeradmin.core.repositories.document_store import DocumentStore
from lockeradmin.core.use_cases.subscribe_collection import CollectionSubscriber
from lockeradmin.core.repositories.documents import lock_state_update

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToggleLockResult:
    locker_id: str
    previous: LockState
    lock_state: LockState


class ToggleLockUseCase:
    """
    Flip a locker's lock bit.

    The current value is read from the live snapshot held in memory, not from
    the store, and written back unconditionally. A concurrent toggle from
    another admin or the firmware can therefore be overwritten (last write wins).
    The cached view is never rolled back; the next pushed snapshot corrects it.
    """

    def __init__(self, *, store: DocumentStore, lockers: CollectionSubscriber[Locker]) -> None:
        self._store = store
        self._lockers = lockers

    def execute(self, *, locker_id: str) -> ToggleLockResult:
        locker = self._lockers.find(locker_id)
        if locker is None:
            raise NotFoundError("Locker not found")

        new_state = locker.lock_state.flipped()
        try:
            self._store.update(self._lockers.collection, locker_id, lock_state_update(new_state))
        except ConnectivityError:
            logger.exception("Failed to toggle lock of locker %s", locker_id)
            raise

        logger.info("Locker %s lock state %d -> %d", locker_id, locker.lock_state, new_state)
        return ToggleLockResult(locker_id=locker_id, previous=locker.lock_state, lock_state=new_state)
