from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timezone, tzinfo

from lockeradmin.core.entities.reservation import Reservation
from lockeradmin.core.use_cases.subscribe_collection import CollectionSubscriber

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"
DEFAULT_TOP_N = 5


@dataclass(frozen=True, slots=True)
class LockerUsage:
    locker_id: str
    count: int


@dataclass(frozen=True, slots=True)
class DailyCount:
    date: str
    count: int


@dataclass(frozen=True, slots=True)
class StatusCount:
    status: str
    count: int


@dataclass(frozen=True, slots=True)
class UsageStats:
    """
    Metrics derived from one reservation snapshot. ``None`` means the metric is
    unavailable because no reservation qualified for it.
    """
    total_reservations: int = 0
    average_duration_minutes: float | None = None
    duration_samples: int = 0
    peak_hour: int | None = None
    hourly_histogram: tuple[int, ...] = field(default_factory=lambda: (0,) * 24)
    top_lockers: tuple[LockerUsage, ...] = ()
    per_day: tuple[DailyCount, ...] = ()
    status_breakdown: tuple[StatusCount, ...] = ()


def compute_usage_stats(
    reservations: Sequence[Reservation],
    *,
    tz: tzinfo = timezone.utc,
    top_n: int = DEFAULT_TOP_N,
) -> UsageStats:
    """
    Recompute every metric from scratch. Each metric skips the reservations that
    lack its own inputs, so one malformed record never blocks the others.
    """
    average, samples = average_duration_minutes(reservations)
    histogram = hourly_histogram(reservations, tz=tz)

    return UsageStats(
        total_reservations=len(reservations),
        average_duration_minutes=average,
        duration_samples=samples,
        peak_hour=peak_hour(histogram),
        hourly_histogram=tuple(histogram),
        top_lockers=tuple(top_lockers(reservations, limit=top_n)),
        per_day=tuple(per_day_counts(reservations)),
        status_breakdown=tuple(status_breakdown(reservations)),
    )


def average_duration_minutes(reservations: Iterable[Reservation]) -> tuple[float | None, int]:
    """Mean of the strictly positive ``end - start`` durations, with the sample count."""
    total = 0.0
    samples = 0
    for r in reservations:
        if r.start_at is None or r.end_at is None:
            continue
        minutes = (r.end_at - r.start_at).total_seconds() / 60
        if minutes <= 0:
            continue
        total += minutes
        samples += 1

    if samples == 0:
        return None, 0
    return total / samples, samples


def hourly_histogram(reservations: Iterable[Reservation], *, tz: tzinfo = timezone.utc) -> list[int]:
    buckets = [0] * 24
    for r in reservations:
        if r.start_at is None:
            continue
        buckets[r.start_at.astimezone(tz).hour] += 1
    return buckets


def peak_hour(buckets: Sequence[int]) -> int | None:
    """Index of the fullest bucket; ties go to the earliest hour."""
    if not buckets:
        return None
    best = max(buckets)
    if best <= 0:
        return None
    return list(buckets).index(best)


def top_lockers(reservations: Iterable[Reservation], *, limit: int = DEFAULT_TOP_N) -> list[LockerUsage]:
    counts: Counter[str] = Counter()
    for r in reservations:
        if r.locker_id:
            counts[r.locker_id] += 1

    # sorted() is stable, so equal counts keep first-encounter order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [LockerUsage(locker_id=locker_id, count=count) for locker_id, count in ranked[:limit]]


def per_day_counts(reservations: Iterable[Reservation]) -> list[DailyCount]:
    counts: Counter[str] = Counter()
    for r in reservations:
        if r.created_at is None:
            continue
        counts[r.created_at.astimezone(timezone.utc).strftime("%Y-%m-%d")] += 1
    return [DailyCount(date=day, count=counts[day]) for day in sorted(counts)]


def status_breakdown(reservations: Iterable[Reservation]) -> list[StatusCount]:
    counts: Counter[str] = Counter()
    for r in reservations:
        counts[r.status or UNKNOWN_STATUS] += 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [StatusCount(status=status, count=count) for status, count in ranked]


class UsageAnalytics:
    """
    Live consumer of the reservation subscriber: holds the stats of the most
    recent snapshot, recomputed in full on every change.
    """

    def __init__(
        self,
        *,
        reservations: CollectionSubscriber[Reservation],
        tz: tzinfo = timezone.utc,
        top_n: int = DEFAULT_TOP_N,
    ) -> None:
        self._reservations = reservations
        self._tz = tz
        self._top_n = top_n
        self._remove = None
        self.stats = UsageStats()

    @property
    def loading(self) -> bool:
        return self._reservations.loading

    def start(self) -> None:
        if self._remove is None:
            self._remove = self._reservations.add_listener(self._recompute)

    def stop(self) -> None:
        if self._remove is not None:
            self._remove()
            self._remove = None

    def _recompute(self, reservations: list[Reservation]) -> None:
        self.stats = compute_usage_stats(reservations, tz=self._tz, top_n=self._top_n)
        logger.debug(
            "Recomputed usage stats over %d reservations (%d duration samples)",
            self.stats.total_reservations,
            self.stats.duration_samples,
        )
