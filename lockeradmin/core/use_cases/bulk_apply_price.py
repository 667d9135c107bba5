from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from lockeradmin.core.entities.locker import Locker
from lockeradmin.core.errors import WriteInProgress
from lockeradmin.core.repositories.document_store import DocumentStore
from lockeradmin.core.repositories.documents import price_update
from lockeradmin.core.use_cases.subscribe_collection import CollectionSubscriber

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BulkPriceResult:
    price_per_hour: float
    updated: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed


class BulkApplyPriceUseCase:
    """
    Apply one hourly price to every locker in the current snapshot.

    One update per locker is issued concurrently and all are awaited. This is
    best-effort: lockers that failed keep their old price, the ones that
    succeeded are not rolled back, and the result reports both sets.
    While a run is in flight ``saving`` is True and further runs are refused.
    """

    def __init__(self, *, store: DocumentStore, lockers: CollectionSubscriber[Locker]) -> None:
        self._store = store
        self._lockers = lockers
        self.saving = False

    async def execute(self, *, price_per_hour: float) -> BulkPriceResult:
        if self.saving:
            raise WriteInProgress("A bulk price update is already in progress")

        self.saving = True
        try:
            locker_ids = [locker.locker_id for locker in self._lockers.items]
            outcomes = await asyncio.gather(
                *(self._apply(locker_id, price_per_hour) for locker_id in locker_ids),
                return_exceptions=True,
            )
        finally:
            self.saving = False

        updated: list[str] = []
        failed: dict[str, str] = {}
        for locker_id, outcome in zip(locker_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Bulk price update failed for locker %s: %s", locker_id, outcome)
                failed[locker_id] = str(outcome)
            else:
                updated.append(locker_id)

        logger.info(
            "Bulk price %.2f/h applied to %d of %d lockers",
            price_per_hour,
            len(updated),
            len(locker_ids),
        )
        return BulkPriceResult(price_per_hour=price_per_hour, updated=updated, failed=failed)

    async def _apply(self, locker_id: str, price_per_hour: float) -> None:
        await asyncio.to_thread(
            self._store.update,
            self._lockers.collection,
            locker_id,
            price_update(price_per_hour),
        )
