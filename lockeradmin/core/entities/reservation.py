from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Reservation:
    """
    Read-only view of one rental period. Timestamps are already normalised to UTC;
    any of them may be None when the stored value was missing or unparseable.
    """
    reservation_id: str
    locker_id: str | None = None
    user_id: str | None = None
    created_at: datetime | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    status: str | None = None
