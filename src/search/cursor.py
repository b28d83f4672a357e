from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


logger = logging.getLogger(__name__)

# encoded cursors are well under 100 chars
MAX_TOKEN_LENGTH = 512


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Cursor:
    """Pagination position: an offset into the result window plus a time upper bound.

    ``time`` is fixed when the first page is served and carried forward, so
    every page of one session filters out items created after it started.
    """

    offset: int = 0
    time: datetime = field(default_factory=utcnow)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_cursor(cursor: Cursor) -> str:
    payload = json.dumps(
        {"offset": cursor.offset, "time": _as_utc(cursor.time).isoformat()},
        separators=(",", ":"),
    )
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(token: Optional[str]) -> Cursor:
    """Decode an opaque cursor token.

    Absent or malformed tokens yield a fresh default cursor; this never raises.
    """
    if not token:
        return Cursor()
    if len(token) > MAX_TOKEN_LENGTH:
        logger.debug("Ignoring oversized cursor (%d chars)", len(token))
        return Cursor()

    try:
        padded = token + "=" * (-len(token) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        if not isinstance(data, dict):
            raise ValueError("cursor payload is not an object")
        offset = data["offset"]
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValueError(f"invalid offset {offset!r}")
        time = _as_utc(datetime.fromisoformat(data["time"]))
    except (binascii.Error, UnicodeError, ValueError, TypeError, KeyError, OverflowError, RecursionError) as e:
        logger.debug("Ignoring malformed cursor %r: %s", token[:MAX_TOKEN_LENGTH], e)
        return Cursor()

    return Cursor(offset=offset, time=time)


def next_cursor(cursor: Cursor, page_size: int) -> Cursor:
    return Cursor(offset=cursor.offset + page_size, time=cursor.time)


def next_cursor_encoded(cursor: Cursor, page_size: int) -> str:
    return encode_cursor(next_cursor(cursor, page_size))
