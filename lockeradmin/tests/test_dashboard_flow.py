from __future__ import annotations

from starlette.testclient import TestClient

from lockeradmin.infrastructure.config import Settings
from lockeradmin.main import create_app


def _client() -> TestClient:
    return TestClient(create_app(Settings(database_url="sqlite+pysqlite:///:memory:")))


def test_locker_lifecycle_through_the_api() -> None:
    with _client() as client:
        assert client.get("/lockers").json() == {"loading": False, "error": None, "lockers": []}

        created = client.post(
            "/lockers",
            json={"id": "L-301", "status": "closed", "price_per_hour": 2.5, "size": "M", "location": "Library"},
        )
        assert created.status_code == 201
        assert created.json()["lock_state"] == 0
        assert created.json()["reservation_until"] is None

        [locker] = client.get("/lockers").json()["lockers"]
        assert locker["id"] == "L-301"
        assert locker["status"] == "closed"
        assert locker["badge_color"] == "emerald"

        assert client.post("/lockers/L-301/lock/toggle").json()["lock_state"] == 1
        assert client.post("/lockers/L-301/lock/toggle").json()["lock_state"] == 0

        priced = client.put("/lockers/L-301/price", json={"price_per_hour": 4})
        assert priced.json()["price_per_hour"] == 4.0

        assert client.delete("/lockers/L-301").status_code == 409
        assert client.delete("/lockers/L-301", params={"confirm": "true"}).status_code == 204
        assert client.get("/lockers").json()["lockers"] == []


def test_bulk_price_and_overview() -> None:
    app = create_app(Settings(database_url="sqlite+pysqlite:///:memory:"))
    with TestClient(app) as client:
        store = app.state.dashboard.store
        store.set("lockers", "A", {"status": "offline", "lockState": 0, "pricePerHour": 1})
        store.set("lockers", "B", {"status": "reserved", "lockState": 1, "reservationUntil": "2030-01-01T00:00:00Z"})
        store.set("lockers", "C", {"status": "malfunction", "lockState": 0})

        result = client.post("/pricing/apply", json={"price_per_hour": 3}).json()
        assert sorted(result["updated"]) == ["A", "B", "C"]
        assert result["failed"] == {}
        assert {locker["price_per_hour"] for locker in client.get("/lockers").json()["lockers"]} == {3.0}

        overview = client.get("/lockers/overview").json()
        assert overview["total_lockers"] == 3
        assert overview["reserved"] == 1
        assert overview["locked"] == 2
        assert overview["unlocked"] == 1
        assert overview["flagged"] == 2


def test_usage_analytics_follow_reservation_changes() -> None:
    app = create_app(Settings(database_url="sqlite+pysqlite:///:memory:"))
    with TestClient(app) as client:
        assert client.get("/analytics/usage").json()["total_reservations"] == 0

        store = app.state.dashboard.store
        store.set(
            "reservations",
            "r1",
            {
                "lockerId": "L-1",
                "userId": "u1",
                "createdAt": "2024-01-01T00:30:00Z",
                "startAt": {"seconds": 1704070800, "nanoseconds": 0},
                "endAt": "2024-01-01T02:00:00Z",
                "status": "active",
            },
        )
        store.set("reservations", "r2", {"lockerId": "L-1", "createdAt": "2024-01-01T05:00:00Z"})

        usage = client.get("/analytics/usage").json()
        assert usage["total_reservations"] == 2
        assert usage["average_duration_minutes"] == 60.0
        assert usage["peak_hour"] == 1
        assert usage["top_lockers"] == [{"locker_id": "L-1", "count": 2}]
        assert usage["per_day"] == [{"date": "2024-01-01", "count": 2}]
        assert usage["status_breakdown"] == [{"status": "active", "count": 1}, {"status": "unknown", "count": 1}]
