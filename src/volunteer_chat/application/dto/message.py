from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from volunteer_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    conversation_id: UUID
    receiver_id: str
    content: str
    client_msg_id: UUID


@dataclass(frozen=True, slots=True)
class MessagePage:
    items: list[Message]
    next_cursor: str | None = None
