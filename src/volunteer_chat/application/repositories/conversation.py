from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from volunteer_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def list_for_user(
        self, user_id: str, *, cursor: str | None = None, limit: int = 20
    ) -> list[Conversation]:
        """Active conversations the user participates in, newest first."""
        ...

    async def list_deleting(self, limit: int) -> list[Conversation]: ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...

    async def append_message(
        self, conversation_id: UUID, message_id: UUID, ts: datetime
    ) -> int | None:
        """Append to the message-id list and bump the sequence counter.

        Returns the sequence number taken by the message, or None when the
        conversation is missing or no longer active.
        """
        ...

    async def remove_message(self, conversation_id: UUID, message_id: UUID) -> None: ...

    async def mark_deleting(self, conversation_id: UUID) -> None: ...

    async def delete(self, conversation_id: UUID) -> None: ...
