from __future__ import annotations

from typing import Protocol
from uuid import UUID

from volunteer_chat.application.dto.message import MessagePage
from volunteer_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> MessagePage:
        """One page in append (seq) order; next_cursor is None on the last page."""
        ...

    async def get_by_client_msg_id(
        self,
        conversation_id: UUID,
        sender_id: str,
        client_msg_id: UUID,
    ) -> Message | None: ...


class MessageWriter(Protocol):
    async def add(self, message: Message) -> Message: ...

    async def mark_read(self, message_ids: set[UUID], receiver_id: str) -> int:
        """Flip is_read for unread messages addressed to receiver_id. Returns rows changed."""
        ...

    async def delete(self, message_id: UUID) -> None: ...

    async def delete_for_conversation(self, conversation_id: UUID) -> int: ...
