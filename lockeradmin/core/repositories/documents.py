"""
Translation between stored documents and domain entities.

Field names on the wire are shared with the mobile app and the locker firmware
and cannot change: ``status`` is the door status and ``lockState`` the solenoid
bit. Use cases only ever see the translated entities.
"""
from __future__ import annotations

import logging
from typing import Any

from lockeradmin.core.entities.locker import DoorStatus, Locker, LockSize, LockState
from lockeradmin.core.entities.reservation import Reservation
from lockeradmin.core.entities.timestamps import to_instant
from lockeradmin.core.errors import ParseError
from lockeradmin.core.repositories.document_store import SERVER_TIMESTAMP, DocumentSnapshot

logger = logging.getLogger(__name__)

_SIZE_ALIASES = {
    "s": LockSize.SMALL,
    "small": LockSize.SMALL,
    "m": LockSize.MEDIUM,
    "medium": LockSize.MEDIUM,
    "l": LockSize.LARGE,
    "large": LockSize.LARGE,
}


def locker_from_document(doc: DocumentSnapshot) -> Locker:
    data = doc.data
    raw_status = data.get("status")
    status_label = raw_status.strip() if isinstance(raw_status, str) else ""

    return Locker(
        locker_id=doc.doc_id,
        label=_text(data.get("label")) or doc.doc_id,
        location=_location(data.get("location")),
        status=DoorStatus.parse(raw_status),
        status_label=status_label,
        lock_state=_lock_state(doc.doc_id, data.get("lockState")),
        price_per_hour=_price(data.get("pricePerHour")),
        size=_size(data.get("size")),
        reservation_until=to_instant(data.get("reservationUntil")),
        last_updated=to_instant(data.get("lastUpdated")),
    )


def reservation_from_document(doc: DocumentSnapshot) -> Reservation:
    data = doc.data
    return Reservation(
        reservation_id=doc.doc_id,
        locker_id=_text(data.get("lockerId")) or None,
        user_id=_text(data.get("userId")) or None,
        created_at=to_instant(data.get("createdAt")),
        start_at=to_instant(data.get("startAt")),
        end_at=to_instant(data.get("endAt")),
        status=_text(data.get("status")) or None,
    )


def new_locker_document(
    *,
    label: str,
    location: str,
    status: str,
    price_per_hour: float,
    size: LockSize | None,
) -> dict[str, Any]:
    """Body of a freshly created locker: always locked and never reserved."""
    return {
        "label": label,
        "location": location,
        "status": status,
        "lockState": int(LockState.LOCKED),
        "pricePerHour": price_per_hour,
        "size": size.value if size is not None else None,
        "reservationUntil": None,
        "lastUpdated": SERVER_TIMESTAMP,
    }


def price_update(price_per_hour: float) -> dict[str, Any]:
    return {"pricePerHour": price_per_hour, "lastUpdated": SERVER_TIMESTAMP}


def lock_state_update(lock_state: LockState) -> dict[str, Any]:
    return {"lockState": int(lock_state), "lastUpdated": SERVER_TIMESTAMP}


def parse_size(raw: Any) -> LockSize | None:
    if isinstance(raw, LockSize):
        return raw
    if not isinstance(raw, str):
        return None
    return _SIZE_ALIASES.get(raw.strip().lower())


# -----------------------------
# Field coercion
# -----------------------------
def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _location(value: Any) -> str:
    # the mobile app stores {name, lat, lng}
    if isinstance(value, dict):
        return _text(value.get("name"))
    return _text(value)


def _size(value: Any) -> LockSize | None:
    size = parse_size(value)
    if size is None and value is not None:
        logger.debug("Unknown locker size %r", value)
    return size


def _price(value: Any) -> float:
    try:
        return _parse_number(value)
    except ParseError:
        return 0.0


def _lock_state(doc_id: str, value: Any) -> LockState:
    try:
        number = _parse_number(value)
    except ParseError:
        number = None
    if number == 1:
        return LockState.UNLOCKED
    if number != 0:
        logger.warning("Locker %s has invalid lockState %r, treating as locked", doc_id, value)
    return LockState.LOCKED


def _parse_number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as e:
            raise ParseError(str(e)) from e
    raise ParseError(f"not a number: {value!r}")
