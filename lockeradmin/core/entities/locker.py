from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum


class DoorStatus(str, Enum):
    """
    Door/app status of a locker.

    The stored field is free text written by several clients, so values outside
    the known set are kept as UNRECOGNIZED instead of being rejected.
    """
    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    OFFLINE = "offline"
    MALFUNCTION = "malfunction"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, raw: object) -> DoorStatus:
        if not isinstance(raw, str):
            return cls.UNRECOGNIZED
        try:
            status = cls(raw.strip().lower())
        except ValueError:
            return cls.UNRECOGNIZED
        return status

    @property
    def badge_color(self) -> str:
        return _BADGE_COLORS.get(self, DEFAULT_BADGE_COLOR)

    @property
    def is_flagged(self) -> bool:
        return self in (DoorStatus.OFFLINE, DoorStatus.MALFUNCTION)


DEFAULT_BADGE_COLOR = "zinc"

_BADGE_COLORS: dict[DoorStatus, str] = {
    DoorStatus.OPEN: "amber",
    DoorStatus.CLOSED: "emerald",
    DoorStatus.LOCKED: "emerald",
    DoorStatus.UNLOCKED: "amber",
    DoorStatus.AVAILABLE: "green",
    DoorStatus.RESERVED: "blue",
    DoorStatus.OCCUPIED: "indigo",
    DoorStatus.OFFLINE: "slate",
    DoorStatus.MALFUNCTION: "red",
}


class LockState(IntEnum):
    LOCKED = 0
    UNLOCKED = 1

    def flipped(self) -> LockState:
        return LockState.UNLOCKED if self is LockState.LOCKED else LockState.LOCKED


class LockSize(str, Enum):
    SMALL = "S"
    MEDIUM = "M"
    LARGE = "L"


@dataclass(slots=True)
class Locker:
    locker_id: str
    label: str = ""
    location: str = ""
    status: DoorStatus = DoorStatus.UNRECOGNIZED
    status_label: str = ""
    lock_state: LockState = LockState.LOCKED
    price_per_hour: float = 0.0
    size: LockSize | None = None
    reservation_until: datetime | None = None
    last_updated: datetime | None = None

    @property
    def is_reserved(self) -> bool:
        return self.reservation_until is not None
