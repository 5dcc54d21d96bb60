from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    client_msg_id: UUID
    seq: int
    created_at: datetime
