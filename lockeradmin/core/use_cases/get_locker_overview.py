from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from lockeradmin.core.entities.locker import Locker, LockState
from lockeradmin.core.use_cases.subscribe_collection import CollectionSubscriber


@dataclass(frozen=True, slots=True)
class LockerOverviewDTO:
    """
    KPI tiles for the dashboard landing page
    """
    total_lockers: int
    reserved: int
    locked: int
    unlocked: int
    flagged: int
    by_status: dict[str, int] = field(default_factory=dict)
    loading: bool = False


class GetLockerOverviewUseCase:
    def __init__(self, *, lockers: CollectionSubscriber[Locker]) -> None:
        self._lockers = lockers

    def execute(self) -> LockerOverviewDTO:
        lockers = self._lockers.items
        by_status = Counter(locker.status.value for locker in lockers)
        locked = sum(1 for locker in lockers if locker.lock_state is LockState.LOCKED)

        return LockerOverviewDTO(
            total_lockers=len(lockers),
            reserved=sum(1 for locker in lockers if locker.is_reserved),
            locked=locked,
            unlocked=len(lockers) - locked,
            flagged=sum(1 for locker in lockers if locker.status.is_flagged),
            by_status=dict(by_status),
            loading=self._lockers.loading,
        )
