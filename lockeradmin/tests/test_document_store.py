from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lockeradmin.core.errors import NotFoundError
from lockeradmin.core.repositories.document_store import SERVER_TIMESTAMP
from lockeradmin.infrastructure.database import Base, create_session_factory, create_store_engine
from lockeradmin.infrastructure.repositories.document_store_sql_impl import SqlDocumentStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> SqlDocumentStore:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return SqlDocumentStore(create_session_factory(engine), clock=lambda: FIXED_NOW)


def test_set_resolves_server_timestamp(store: SqlDocumentStore) -> None:
    store.set("lockers", "L-1", {"label": "A", "lastUpdated": SERVER_TIMESTAMP})

    doc = store.get("lockers", "L-1")
    assert doc is not None
    assert doc.data["label"] == "A"
    assert doc.data["lastUpdated"] == {"seconds": int(FIXED_NOW.timestamp()), "nanoseconds": 0}


def test_update_merges_fields_and_keeps_foreign_ones(store: SqlDocumentStore) -> None:
    store.set("lockers", "L-1", {"label": "A", "firmwareRev": "1.4", "pricePerHour": 1.0})

    store.update("lockers", "L-1", {"pricePerHour": 3.0})

    assert store.get("lockers", "L-1").data == {"label": "A", "firmwareRev": "1.4", "pricePerHour": 3.0}


def test_update_missing_document_raises(store: SqlDocumentStore) -> None:
    with pytest.raises(NotFoundError):
        store.update("lockers", "nope", {"pricePerHour": 3.0})


def test_delete_missing_document_is_a_no_op(store: SqlDocumentStore) -> None:
    store.delete("lockers", "nope")
    assert store.list_documents("lockers") == []


def test_collections_are_isolated(store: SqlDocumentStore) -> None:
    store.set("lockers", "X", {"n": 1})
    store.set("reservations", "X", {"n": 2})

    assert store.get("lockers", "X").data == {"n": 1}
    assert [d.doc_id for d in store.list_documents("reservations")] == ["X"]


def test_order_by_sorts_mixed_timestamps_and_puts_missing_last(store: SqlDocumentStore) -> None:
    store.set("reservations", "late", {"createdAt": "2024-01-03T00:00:00Z"})
    store.set("reservations", "none", {})
    store.set("reservations", "early", {"createdAt": {"seconds": 1704067200, "nanoseconds": 0}})
    store.set("reservations", "mid", {"createdAt": {"seconds": 1704153600, "nanoseconds": 0}})

    ordered = [d.doc_id for d in store.list_documents("reservations", order_by="createdAt")]

    assert ordered[:2] == ["early", "mid"]
    assert ordered[-1] == "none"


def test_listener_receives_initial_and_full_snapshots(store: SqlDocumentStore) -> None:
    store.set("lockers", "L-1", {"label": "A"})
    snapshots: list[list[str]] = []

    registration = store.on_snapshot(
        "lockers",
        lambda docs: snapshots.append([d.doc_id for d in docs]),
        lambda error: pytest.fail(f"unexpected error {error}"),
    )
    store.set("lockers", "L-2", {"label": "B"})
    store.set("reservations", "R-1", {})
    store.delete("lockers", "L-1")

    assert snapshots == [["L-1"], ["L-1", "L-2"], ["L-2"]]

    registration.unsubscribe()
    store.set("lockers", "L-3", {})
    assert len(snapshots) == 3
    assert store.listener_count("lockers") == 0


def test_failing_listener_does_not_break_writes(store: SqlDocumentStore) -> None:
    def _explode(docs) -> None:
        raise RuntimeError("consumer bug")

    store.on_snapshot("lockers", _explode, lambda error: None)
    store.set("lockers", "L-1", {"label": "A"})

    assert store.get("lockers", "L-1") is not None


def test_listener_error_callback_on_unreachable_store() -> None:
    engine = create_store_engine("sqlite+pysqlite:///:memory:")  # tables never created
    store = SqlDocumentStore(create_session_factory(engine))
    errors: list[Exception] = []

    store.on_snapshot("lockers", lambda docs: pytest.fail("no snapshot expected"), errors.append)

    assert len(errors) == 1
