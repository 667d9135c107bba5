"""
Normalisation of the timestamp representations found on the wire.

Documents written by the dashboard, the mobile client and the locker firmware
disagree on how instants are encoded: typed store timestamps, ISO-8601 strings
and plain epoch numbers all occur, sometimes within the same collection. Every
value is turned into a timezone-aware UTC ``datetime`` here so the ambiguity
never reaches the use cases.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from functools import singledispatch
from typing import Any

from lockeradmin.core.errors import ParseError

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d\d:?\d\d$|$)")


def to_instant(value: Any) -> datetime | None:
    """
    Return ``value`` as an aware UTC datetime, or None if it is missing or unparseable.
    """
    if value is None:
        return None
    try:
        return _parse(value)
    except ParseError as e:
        logger.debug("Discarding unparseable timestamp %r: %s", value, e)
        return None


def to_wire(instant: datetime) -> dict[str, int]:
    """Encode an instant in the store's typed timestamp form."""
    instant = _as_utc(instant)
    seconds = int(instant.replace(microsecond=0).timestamp())
    return {"seconds": seconds, "nanoseconds": instant.microsecond * 1000}


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


@singledispatch
def _parse(value: Any) -> datetime:
    raise ParseError(f"unsupported timestamp type {type(value).__name__}")


@_parse.register
def _(value: datetime) -> datetime:
    return _as_utc(value)


@_parse.register
def _(value: str) -> datetime:
    text = value.strip()
    if not text:
        raise ParseError("empty timestamp string")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat wants exactly six fractional digits on older interpreters
    text = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError as e:
        raise ParseError(str(e)) from e


@_parse.register
def _(value: bool) -> datetime:
    raise ParseError("booleans are not timestamps")


@_parse.register(int)
@_parse.register(float)
def _(value: int | float) -> datetime:
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ParseError(str(e)) from e


@_parse.register
def _(value: dict) -> datetime:
    seconds = value.get("seconds", value.get("_seconds"))
    nanos = value.get("nanoseconds", value.get("_nanoseconds", 0))
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise ParseError("timestamp map without numeric seconds")
    if isinstance(nanos, bool) or not isinstance(nanos, (int, float)):
        raise ParseError("timestamp map with non-numeric nanoseconds")
    try:
        base = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
        micro = int(nanos) // 1000 % 1_000_000
    except (OverflowError, OSError, ValueError) as e:
        raise ParseError(str(e)) from e
    return base.replace(microsecond=micro)
