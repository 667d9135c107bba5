from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Size(Enum):
    S = 'S'
    M = 'M'
    L = 'L'


class LockerOut(BaseModel):
    id: str
    label: str
    location: str
    status: str
    status_label: str
    badge_color: str
    lock_state: int
    price_per_hour: float
    size: Size | None
    reserved: bool
    reservation_until: datetime | None
    last_updated: datetime | None


class LockerList(BaseModel):
    loading: bool
    error: str | None = None
    lockers: list[LockerOut]


class LockerCreate(BaseModel):
    id: str
    label: str = ""
    location: str = ""
    status: str = "available"
    price_per_hour: float = Field(default=0.0, ge=0)
    size: Size | None = None


class PriceUpdate(BaseModel):
    price_per_hour: float = Field(ge=0)


class LockToggled(BaseModel):
    id: str
    previous: int
    lock_state: int


class BulkPriceRequest(BaseModel):
    price_per_hour: float = Field(ge=0)


class BulkPriceOut(BaseModel):
    price_per_hour: float
    updated: list[str]
    failed: dict[str, str]


class LockerOverview(BaseModel):
    loading: bool
    total_lockers: int
    reserved: int
    locked: int
    unlocked: int
    flagged: int
    by_status: dict[str, int]


class LockerUsageOut(BaseModel):
    locker_id: str
    count: int


class DailyCountOut(BaseModel):
    date: str
    count: int


class StatusCountOut(BaseModel):
    status: str
    count: int


class UsageStatsOut(BaseModel):
    loading: bool
    total_reservations: int
    average_duration_minutes: float | None
    peak_hour: int | None
    hourly_histogram: list[int]
    top_lockers: list[LockerUsageOut]
    per_day: list[DailyCountOut]
    status_breakdown: list[StatusCountOut]
