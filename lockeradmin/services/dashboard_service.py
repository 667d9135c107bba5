from __future__ import annotations

import logging

from sqlalchemy import Engine

from lockeradmin.core.entities.locker import Locker, LockSize
from lockeradmin.core.entities.reservation import Reservation
from lockeradmin.core.errors import NotFoundError
from lockeradmin.core.repositories.document_store import DocumentStore
from lockeradmin.core.repositories.documents import locker_from_document, reservation_from_document
from lockeradmin.core.use_cases.bulk_apply_price import BulkApplyPriceUseCase
from lockeradmin.core.use_cases.compute_usage_stats import UsageAnalytics
from lockeradmin.core.use_cases.create_locker import CreateLockerCommand, CreateLockerUseCase
from lockeradmin.core.use_cases.delete_locker import DeleteLockerUseCase
from lockeradmin.core.use_cases.get_locker_overview import GetLockerOverviewUseCase
from lockeradmin.core.use_cases.subscribe_collection import CollectionSubscriber
from lockeradmin.core.use_cases.toggle_lock import ToggleLockUseCase
from lockeradmin.core.use_cases.update_price import UpdatePriceUseCase
from lockeradmin.infrastructure.config import Settings
from lockeradmin.infrastructure.database import Base, create_session_factory, create_store_engine
from lockeradmin.infrastructure.repositories.document_store_sql_impl import SqlDocumentStore
from lockeradmin.schemas.models import (
    BulkPriceOut,
    BulkPriceRequest,
    DailyCountOut,
    LockerCreate,
    LockerList,
    LockerOut,
    LockerOverview,
    LockerUsageOut,
    LockToggled,
    PriceUpdate,
    StatusCountOut,
    UsageStatsOut,
)

logger = logging.getLogger(__name__)


class Dashboard:
    """
    Everything one dashboard instance needs, built explicitly and passed to the
    routers: the store client, the two live subscribers and the use cases.
    ``start``/``stop`` follow the application lifecycle.
    """

    def __init__(self, *, store: DocumentStore, settings: Settings, engine: Engine | None = None) -> None:
        self.store = store
        self.settings = settings
        self._engine = engine

        self.lockers: CollectionSubscriber[Locker] = CollectionSubscriber(
            store=store,
            collection=settings.lockers_collection,
            mapper=locker_from_document,
            key=lambda locker: locker.locker_id,
        )
        self.reservations: CollectionSubscriber[Reservation] = CollectionSubscriber(
            store=store,
            collection=settings.reservations_collection,
            mapper=reservation_from_document,
            order_by=settings.reservations_order_by,
            key=lambda reservation: reservation.reservation_id,
        )
        self.analytics = UsageAnalytics(
            reservations=self.reservations,
            tz=settings.local_tzinfo(),
            top_n=settings.top_lockers_limit,
        )

        collection = settings.lockers_collection
        self.create_locker = CreateLockerUseCase(store=store, collection=collection)
        self.delete_locker = DeleteLockerUseCase(store=store, collection=collection)
        self.update_price = UpdatePriceUseCase(store=store, collection=collection)
        self.toggle_lock = ToggleLockUseCase(store=store, lockers=self.lockers)
        self.bulk_apply_price = BulkApplyPriceUseCase(store=store, lockers=self.lockers)
        self.overview = GetLockerOverviewUseCase(lockers=self.lockers)

    @classmethod
    def from_settings(cls, settings: Settings) -> Dashboard:
        engine = create_store_engine(settings.database_url)
        store = SqlDocumentStore(create_session_factory(engine))
        return cls(store=store, settings=settings, engine=engine)

    def start(self) -> None:
        if self._engine is not None:
            Base.metadata.create_all(bind=self._engine)
        self.analytics.start()
        self.lockers.start()
        self.reservations.start()
        logger.info(
            "Dashboard subscribed to %r and %r",
            self.settings.lockers_collection,
            self.settings.reservations_collection,
        )

    def stop(self) -> None:
        self.reservations.stop()
        self.lockers.stop()
        self.analytics.stop()
        if self._engine is not None:
            self._engine.dispose()
        logger.info("Dashboard stopped")


def _locker_out(locker: Locker) -> LockerOut:
    return LockerOut(
        id=locker.locker_id,
        label=locker.label,
        location=locker.location,
        status=locker.status.value,
        status_label=locker.status_label,
        badge_color=locker.status.badge_color,
        lock_state=int(locker.lock_state),
        price_per_hour=locker.price_per_hour,
        size=locker.size.value if locker.size is not None else None,
        reserved=locker.is_reserved,
        reservation_until=locker.reservation_until,
        last_updated=locker.last_updated,
    )


def _stored_locker(locker_id: str, dashboard: Dashboard) -> LockerOut:
    doc = dashboard.store.get(dashboard.settings.lockers_collection, locker_id)
    if doc is None:
        raise NotFoundError("Locker not found")
    return _locker_out(locker_from_document(doc))


def list_lockers_service(dashboard: Dashboard) -> LockerList:
    subscriber = dashboard.lockers
    return LockerList(
        loading=subscriber.loading,
        error=str(subscriber.error) if subscriber.error is not None else None,
        lockers=[_locker_out(locker) for locker in subscriber.items],
    )


def get_locker_overview_service(dashboard: Dashboard) -> LockerOverview:
    dto = dashboard.overview.execute()
    return LockerOverview(
        loading=dto.loading,
        total_lockers=dto.total_lockers,
        reserved=dto.reserved,
        locked=dto.locked,
        unlocked=dto.unlocked,
        flagged=dto.flagged,
        by_status=dto.by_status,
    )


def create_locker_service(body: LockerCreate, dashboard: Dashboard) -> LockerOut:
    locker_id = dashboard.create_locker.execute(
        CreateLockerCommand(
            locker_id=body.id,
            label=body.label,
            location=body.location,
            status=body.status,
            price_per_hour=body.price_per_hour,
            size=LockSize(body.size.value) if body.size is not None else None,
        )
    )
    return _stored_locker(locker_id, dashboard)


def delete_locker_service(locker_id: str, confirm: bool, dashboard: Dashboard) -> None:
    dashboard.delete_locker.execute(locker_id=locker_id, confirm=confirm)


def update_price_service(locker_id: str, body: PriceUpdate, dashboard: Dashboard) -> LockerOut:
    dashboard.update_price.execute(locker_id=locker_id, price_per_hour=body.price_per_hour)
    return _stored_locker(locker_id, dashboard)


def toggle_lock_service(locker_id: str, dashboard: Dashboard) -> LockToggled:
    result = dashboard.toggle_lock.execute(locker_id=locker_id)
    return LockToggled(id=result.locker_id, previous=int(result.previous), lock_state=int(result.lock_state))


async def bulk_apply_price_service(body: BulkPriceRequest, dashboard: Dashboard) -> BulkPriceOut:
    result = await dashboard.bulk_apply_price.execute(price_per_hour=body.price_per_hour)
    return BulkPriceOut(price_per_hour=result.price_per_hour, updated=result.updated, failed=result.failed)


def get_usage_stats_service(dashboard: Dashboard) -> UsageStatsOut:
    stats = dashboard.analytics.stats
    return UsageStatsOut(
        loading=dashboard.analytics.loading,
        total_reservations=stats.total_reservations,
        average_duration_minutes=stats.average_duration_minutes,
        peak_hour=stats.peak_hour,
        hourly_histogram=list(stats.hourly_histogram),
        top_lockers=[LockerUsageOut(locker_id=u.locker_id, count=u.count) for u in stats.top_lockers],
        per_day=[DailyCountOut(date=d.date, count=d.count) for d in stats.per_day],
        status_breakdown=[StatusCountOut(status=s.status, count=s.count) for s in stats.status_breakdown],
    )
