from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from volunteer_chat.domain.value_objects.enums import ConversationStatus


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    participants: tuple[str, ...]
    message_ids: tuple[UUID, ...]
    message_seq: int
    name: str | None
    is_group: bool
    status: str
    created_by: str
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == ConversationStatus.ACTIVE

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants
