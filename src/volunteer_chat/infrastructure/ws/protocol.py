"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

# client -> server
AUTH = "auth"
JOIN_CHAT = "joinChat"
LEAVE_CHAT = "leaveChat"
SEND_MESSAGE = "sendMessage"
MARK_READ = "markRead"
PING = "ping"

# server -> client
CONNECTED = "connected"
CONNECT_ERROR = "connect_error"
JOINED_CHAT = "joinedChat"
RECEIVE_MESSAGE = "receiveMessage"
MESSAGE_DELETED = "messageDeleted"
MARKED_READ = "markedRead"
ERROR = "error"
PONG = "pong"

CLOSE_AUTH_FAILED = 4001


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # auth | joinChat | leaveChat | sendMessage | markRead | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # connected | receiveMessage | messageDeleted | error | pong | ...
    data: dict[str, Any] = {}


def frame(event: str, data: dict[str, Any] | None = None) -> str:
    return WsOutbound(type=event, data=data or {}).model_dump_json()
