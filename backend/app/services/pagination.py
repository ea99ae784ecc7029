"""Opaque cursor codec for group feed pagination.

A cursor pins a position in the (start_timestamp, event_id) ordering plus the
direction it was issued for. Tokens are URL-safe base64 of compact JSON. Decoding
fails closed: anything that is not a well-formed token raises ``InvalidCursor``,
never a silent reset to the start of the feed. Unknown keys are ignored so new
optional fields can be added without breaking tokens already handed out.
"""
from __future__ import annotations

import base64
import binascii
import enum
import json
from dataclasses import dataclass
from typing import Any

from app.errors import InvalidCursor

CURSOR_FORMAT_VERSION = 1


class CursorDirection(str, enum.Enum):
    forward = "f"
    backward = "b"


@dataclass(frozen=True, slots=True)
class FeedCursor:
    """Pagination position: last time key, last event id, direction."""

    start_timestamp: int
    event_id: str
    direction: CursorDirection


def encode_cursor(cursor: FeedCursor) -> str:
    """Encode a cursor payload using URL-safe base64."""
    payload = {
        "v": CURSOR_FORMAT_VERSION,
        "t": cursor.start_timestamp,
        "id": cursor.event_id,
        "d": cursor.direction.value,
    }
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(value: str) -> FeedCursor:
    """Decode a cursor string produced by :func:`encode_cursor`."""
    if not isinstance(value, str) or not value:
        raise InvalidCursor("Pagination cursor is empty")
    try:
        raw = base64.b64decode(value.encode("ascii"), altchars=b"-_", validate=True)
        payload: Any = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise InvalidCursor("Pagination cursor is not a valid token") from exc

    if not isinstance(payload, dict):
        raise InvalidCursor("Pagination cursor is not a valid token")

    version = payload.get("v", CURSOR_FORMAT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version > CURSOR_FORMAT_VERSION:
        raise InvalidCursor("Pagination cursor has an unsupported format")

    timestamp = payload.get("t")
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        raise InvalidCursor("Pagination cursor is missing its time key")

    event_id = payload.get("id")
    if not isinstance(event_id, str) or not event_id:
        raise InvalidCursor("Pagination cursor is missing its event id")

    try:
        direction = CursorDirection(payload.get("d"))
    except ValueError as exc:
        raise InvalidCursor("Pagination cursor has an unknown direction") from exc

    return FeedCursor(start_timestamp=timestamp, event_id=event_id, direction=direction)
