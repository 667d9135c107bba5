from __future__ import annotations

import asyncio
import threading

import pytest

from lockeradmin.core.entities.locker import Locker, LockSize, LockState
from lockeradmin.core.errors import (
    ConfirmationRequired,
    ConnectivityError,
    NotFoundError,
    ValidationError,
    WriteInProgress,
)
from lockeradmin.core.repositories.documents import locker_from_document
from lockeradmin.core.use_cases.bulk_apply_price import BulkApplyPriceUseCase
from lockeradmin.core.use_cases.create_locker import CreateLockerCommand, CreateLockerUseCase
from lockeradmin.core.use_cases.delete_locker import DeleteLockerUseCase
from lockeradmin.core.use_cases.subscribe_collection import CollectionSubscriber
from lockeradmin.core.use_cases.toggle_lock import ToggleLockUseCase
from lockeradmin.core.use_cases.update_price import UpdatePriceUseCase
from lockeradmin.infrastructure.database import Base, create_session_factory, create_store_engine
from lockeradmin.infrastructure.repositories.document_store_sql_impl import SqlDocumentStore


class _FlakyStore(SqlDocumentStore):
    """Fails updates for the given document ids, optionally blocking until released."""

    def __init__(self, *args, failing: set[str] | None = None, gate: threading.Event | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing = failing or set()
        self.gate = gate

    def update(self, collection, doc_id, fields):
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if doc_id in self.failing:
            raise ConnectivityError(f"write to {doc_id} timed out")
        super().update(collection, doc_id, fields)


def _store(**kwargs) -> _FlakyStore:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return _FlakyStore(create_session_factory(engine), **kwargs)


def _lockers(store) -> CollectionSubscriber[Locker]:
    subscriber = CollectionSubscriber(
        store=store,
        collection="lockers",
        mapper=locker_from_document,
        key=lambda locker: locker.locker_id,
    )
    subscriber.start()
    return subscriber


@pytest.fixture()
def store() -> _FlakyStore:
    return _store()


def test_create_then_toggle_twice_round_trip(store: _FlakyStore) -> None:
    lockers = _lockers(store)
    create = CreateLockerUseCase(store=store, collection="lockers")
    toggle = ToggleLockUseCase(store=store, lockers=lockers)

    create.execute(CreateLockerCommand(locker_id="L-301", status="closed", price_per_hour=2.5, size=LockSize.SMALL))

    data = store.get("lockers", "L-301").data
    assert data["lockState"] == 0
    assert data["reservationUntil"] is None
    assert data["pricePerHour"] == 2.5
    assert data["status"] == "closed"
    assert data["size"] == "S"
    assert set(data["lastUpdated"]) == {"seconds", "nanoseconds"}

    first = toggle.execute(locker_id="L-301")
    assert first.lock_state is LockState.UNLOCKED
    assert store.get("lockers", "L-301").data["lockState"] == 1

    second = toggle.execute(locker_id="L-301")
    assert second.previous is LockState.UNLOCKED
    assert store.get("lockers", "L-301").data["lockState"] == 0


def test_create_trims_identifier_and_defaults_label(store: _FlakyStore) -> None:
    create = CreateLockerUseCase(store=store, collection="lockers")

    assert create.execute(CreateLockerCommand(locker_id="  L-7 ")) == "L-7"

    data = store.get("lockers", "L-7").data
    assert data["label"] == "L-7"
    assert data["status"] == "available"


def test_create_with_blank_identifier_writes_nothing(store: _FlakyStore) -> None:
    create = CreateLockerUseCase(store=store, collection="lockers")

    with pytest.raises(ValidationError):
        create.execute(CreateLockerCommand(locker_id="   ", price_per_hour=1.0))

    assert store.list_documents("lockers") == []


def test_delete_requires_confirmation(store: _FlakyStore) -> None:
    store.set("lockers", "L-1", {"label": "A"})
    delete = DeleteLockerUseCase(store=store, collection="lockers")

    with pytest.raises(ConfirmationRequired):
        delete.execute(locker_id="L-1", confirm=False)
    assert store.get("lockers", "L-1") is not None

    delete.execute(locker_id="L-1", confirm=True)
    assert store.get("lockers", "L-1") is None


def test_delete_unknown_locker(store: _FlakyStore) -> None:
    delete = DeleteLockerUseCase(store=store, collection="lockers")

    with pytest.raises(NotFoundError):
        delete.execute(locker_id="ghost", confirm=True)


def test_update_price_does_not_enforce_a_lower_bound(store: _FlakyStore) -> None:
    store.set("lockers", "L-1", {"pricePerHour": 2.0})
    update = UpdatePriceUseCase(store=store, collection="lockers")

    update.execute(locker_id="L-1", price_per_hour=-1.0)

    data = store.get("lockers", "L-1").data
    assert data["pricePerHour"] == -1.0
    assert "lastUpdated" in data


def test_update_price_of_unknown_locker(store: _FlakyStore) -> None:
    update = UpdatePriceUseCase(store=store, collection="lockers")

    with pytest.raises(NotFoundError):
        update.execute(locker_id="ghost", price_per_hour=1.0)


def test_toggle_uses_cached_state_and_is_not_rolled_back_on_failure() -> None:
    store = _store(failing={"L-1"})
    store.set("lockers", "L-1", {"lockState": 0})
    lockers = _lockers(store)
    toggle = ToggleLockUseCase(store=store, lockers=lockers)

    with pytest.raises(ConnectivityError):
        toggle.execute(locker_id="L-1")

    assert lockers.find("L-1").lock_state is LockState.LOCKED
    assert store.get("lockers", "L-1").data["lockState"] == 0


def test_toggle_unknown_locker(store: _FlakyStore) -> None:
    toggle = ToggleLockUseCase(store=store, lockers=_lockers(store))

    with pytest.raises(NotFoundError):
        toggle.execute(locker_id="ghost")


def test_bulk_price_is_best_effort_on_partial_failure() -> None:
    store = _store(failing={"L-2"})
    for locker_id in ("L-1", "L-2", "L-3"):
        store.set("lockers", locker_id, {"pricePerHour": 1.0})
    bulk = BulkApplyPriceUseCase(store=store, lockers=_lockers(store))

    result = asyncio.run(bulk.execute(price_per_hour=4.0))

    assert sorted(result.updated) == ["L-1", "L-3"]
    assert list(result.failed) == ["L-2"]
    assert result.complete is False
    assert bulk.saving is False
    assert store.get("lockers", "L-1").data["pricePerHour"] == 4.0
    assert store.get("lockers", "L-2").data["pricePerHour"] == 1.0
    assert store.get("lockers", "L-3").data["pricePerHour"] == 4.0


def test_bulk_price_refuses_reentrant_run() -> None:
    gate = threading.Event()
    store = _store(gate=gate)
    store.set("lockers", "L-1", {"pricePerHour": 1.0})
    bulk = BulkApplyPriceUseCase(store=store, lockers=_lockers(store))

    async def _scenario():
        first = asyncio.create_task(bulk.execute(price_per_hour=2.0))
        await asyncio.sleep(0)
        assert bulk.saving is True
        with pytest.raises(WriteInProgress):
            await bulk.execute(price_per_hour=3.0)
        gate.set()
        return await first

    result = asyncio.run(_scenario())

    assert result.updated == ["L-1"]
    assert bulk.saving is False
    assert store.get("lockers", "L-1").data["pricePerHour"] == 2.0
