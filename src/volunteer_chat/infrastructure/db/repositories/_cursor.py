"""Cursor-based pagination helpers.

Conversation cursor: base64("<iso-timestamp>|<uuid>")
Message cursor: base64("seq|<int>")
"""
from __future__ import annotations

import base64
from datetime import datetime, timezone
from uuid import UUID

from volunteer_chat.application.exceptions import ValidationError


def _encode(raw: str) -> str:
    cursor = base64.urlsafe_b64encode(raw.encode()).decode()
    return cursor.rstrip("=")


def _decode(cursor: str) -> str:
    # Restore base64 padding if it was stripped
    cursor += "=" * ((4 - len(cursor) % 4) % 4)
    try:
        return base64.urlsafe_b64decode(cursor.encode()).decode()
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValidationError("Malformed cursor") from exc


def encode_cursor(ts: datetime | None, uid: UUID) -> str:
    ts_str = (ts or datetime.min.replace(tzinfo=timezone.utc)).isoformat()
    return _encode(f"{ts_str}|{uid}")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    raw = _decode(cursor)
    try:
        ts_str, uid_str = raw.split("|", 1)
        return datetime.fromisoformat(ts_str), UUID(uid_str)
    except ValueError as exc:
        raise ValidationError("Malformed cursor") from exc


def encode_seq_cursor(seq: int) -> str:
    return _encode(f"seq|{seq}")


def decode_seq_cursor(cursor: str) -> int:
    prefix, _, value = _decode(cursor).partition("|")
    if prefix != "seq" or not value.isdigit():
        raise ValidationError("Malformed cursor")
    return int(value)
