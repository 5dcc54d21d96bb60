from __future__ import annotations

from enum import StrEnum


class ConversationStatus(StrEnum):
    ACTIVE = "active"
    DELETING = "deleting"


class SessionState(StrEnum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    REJECTED = "rejected"
    CLOSED = "closed"
