"""Client-side view of one conversation.

Confirmed messages are keyed by server id and ordered by ``seq``. Messages
sent optimistically sit in a pending set keyed by their ``client_msg_id``
until the server echoes them back (live or in a refetched history).
"""
from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from volunteer_chat.domain.entities.message import Message


def message_from_payload(data: dict[str, Any]) -> Message:
    return Message(
        id=UUID(data["id"]),
        conversation_id=UUID(data["conversation_id"]),
        sender_id=data["sender_id"],
        receiver_id=data["receiver_id"],
        content=data["content"],
        is_read=bool(data.get("is_read", False)),
        client_msg_id=UUID(data["client_msg_id"]),
        seq=int(data["seq"]),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


@dataclass(slots=True)
class PendingMessage:
    client_msg_id: UUID
    conversation_id: UUID
    receiver_id: str
    content: str
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation_id),
            "receiver_id": self.receiver_id,
            "content": self.content,
            "client_msg_id": str(self.client_msg_id),
        }


class ConversationTimeline:
    def __init__(self, conversation_id: UUID, user_id: str) -> None:
        self.conversation_id = conversation_id
        self.user_id = user_id
        self._confirmed: dict[UUID, Message] = {}
        self._pending: dict[UUID, PendingMessage] = {}
        # live traffic seen during a history fetch; None when no fetch runs
        self._arrived: dict[UUID, Message] | None = None
        self._removed: set[UUID] = set()

    @property
    def pending(self) -> list[PendingMessage]:
        return list(self._pending.values())

    def confirmed(self) -> list[Message]:
        return sorted(self._confirmed.values(), key=lambda m: m.seq)

    def messages(self) -> list[Message | PendingMessage]:
        """Confirmed history followed by still-pending sends, in send order."""
        return [*self.confirmed(), *self._pending.values()]

    def add_pending(self, content: str, receiver_id: str) -> PendingMessage:
        pending = PendingMessage(
            client_msg_id=uuid.uuid4(),
            conversation_id=self.conversation_id,
            receiver_id=receiver_id,
            content=content,
        )
        self._pending[pending.client_msg_id] = pending
        return pending

    def apply_received(self, msg: Message) -> bool:
        """Merge a live message. Returns False for duplicates and foreign rooms."""
        if msg.conversation_id != self.conversation_id:
            return False
        self._resolve(msg)
        if msg.id in self._confirmed:
            return False
        self._confirmed[msg.id] = msg
        if self._arrived is not None:
            self._arrived[msg.id] = msg
        return True

    def begin_refresh(self) -> None:
        """Start tracking live changes while a history fetch is in flight."""
        self._arrived = {}
        self._removed = set()

    def abort_refresh(self) -> None:
        self._arrived = None
        self._removed = set()

    def apply_snapshot(self, messages: Iterable[Message]) -> list[PendingMessage]:
        """Replace the confirmed history and return what is still unconfirmed.

        The snapshot is authoritative. Only live messages and deletions seen
        since :meth:`begin_refresh` are layered on top of it.
        """
        snapshot = {m.id: m for m in messages if m.conversation_id == self.conversation_id}
        arrived = self._arrived or {}
        merged = {**arrived, **snapshot}
        self._confirmed = {mid: m for mid, m in merged.items() if mid not in self._removed}
        self.abort_refresh()
        for msg in self._confirmed.values():
            self._resolve(msg)
        return self.pending

    def apply_deleted(self, message_id: UUID) -> bool:
        if self._arrived is not None:
            self._arrived.pop(message_id, None)
            self._removed.add(message_id)
        return self._confirmed.pop(message_id, None) is not None

    def fail_pending(self, client_msg_id: UUID, reason: str) -> PendingMessage | None:
        pending = self._pending.get(client_msg_id)
        if pending is not None:
            pending.error = reason
        return pending

    def discard_pending(self, client_msg_id: UUID) -> None:
        self._pending.pop(client_msg_id, None)

    def unread_for_me(self) -> list[UUID]:
        return [
            m.id for m in self.confirmed()
            if m.receiver_id == self.user_id and not m.is_read
        ]

    def mark_read_locally(self, message_ids: Iterable[UUID]) -> None:
        for mid in message_ids:
            msg = self._confirmed.get(mid)
            if msg is not None and msg.receiver_id == self.user_id:
                self._confirmed[mid] = dataclasses.replace(msg, is_read=True)

    def _resolve(self, msg: Message) -> None:
        if msg.sender_id == self.user_id:
            self._pending.pop(msg.client_msg_id, None)
