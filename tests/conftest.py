"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator
from uuid import UUID

import pytest

from volunteer_chat.application.dto.message import MessagePage
from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.domain.entities.conversation import Conversation
from volunteer_chat.domain.entities.message import Message
from volunteer_chat.domain.value_objects.enums import ConversationStatus
from volunteer_chat.infrastructure.db.repositories._cursor import (
    decode_cursor,
    decode_seq_cursor,
    encode_seq_cursor,
)

ALICE = "alice"
BOB = "bob"
CAROL = "carol"


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=ALICE)


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=BOB)


@pytest.fixture
def carol() -> Principal:
    return Principal(user_id=CAROL)


@dataclass
class SteppingClock:
    """Each call returns ``start`` advanced by ``step``."""

    start: datetime
    step: timedelta = timedelta(seconds=1)
    calls: int = 0

    def now(self) -> datetime:
        ts = self.start + self.step * self.calls
        self.calls += 1
        return ts


def make_conversation(
    *,
    conversation_id: UUID | None = None,
    participants: tuple[str, ...] = (ALICE, BOB),
    status: str = ConversationStatus.ACTIVE,
    created_at: datetime | None = None,
) -> Conversation:
    now = created_at or datetime.now(timezone.utc)
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        participants=participants,
        message_ids=(),
        message_seq=0,
        name=None,
        is_group=len(participants) > 2,
        status=status,
        created_by=participants[0],
        last_message_at=None,
        created_at=now,
        updated_at=now,
    )


def make_message(
    *,
    conversation_id: UUID | None = None,
    sender_id: str = ALICE,
    receiver_id: str = BOB,
    content: str = "hello",
    seq: int = 1,
    is_read: bool = False,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id or uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        is_read=is_read,
        client_msg_id=uuid.uuid4(),
        seq=seq,
        created_at=datetime.now(timezone.utc),
    )


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def list_for_user(
        self, user_id: str, *, cursor: str | None = None, limit: int = 20
    ) -> list[Conversation]:
        convs = sorted(
            (c for c in self._store.values() if c.is_active and c.has_participant(user_id)),
            key=lambda c: (c.created_at, c.id),
            reverse=True,
        )
        if cursor:
            ts, cid = decode_cursor(cursor)
            convs = [c for c in convs if (c.created_at, c.id) < (ts, cid)]
        return convs[:limit]

    async def list_deleting(self, limit: int) -> list[Conversation]:
        return [c for c in self._store.values() if not c.is_active][:limit]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader

    async def create(self, conversation: Conversation) -> Conversation:
        self._reader._store[conversation.id] = conversation
        return conversation

    async def append_message(
        self, conversation_id: UUID, message_id: UUID, ts: datetime
    ) -> int | None:
        conv = self._reader._store.get(conversation_id)
        if conv is None or not conv.is_active:
            return None
        seq = conv.message_seq + 1
        self._reader._store[conversation_id] = dataclasses.replace(
            conv,
            message_ids=(*conv.message_ids, message_id),
            message_seq=seq,
            last_message_at=ts,
            updated_at=ts,
        )
        return seq

    async def remove_message(self, conversation_id: UUID, message_id: UUID) -> None:
        conv = self._reader._store[conversation_id]
        self._reader._store[conversation_id] = dataclasses.replace(
            conv, message_ids=tuple(m for m in conv.message_ids if m != message_id),
        )

    async def mark_deleting(self, conversation_id: UUID) -> None:
        conv = self._reader._store[conversation_id]
        self._reader._store[conversation_id] = dataclasses.replace(
            conv, status=ConversationStatus.DELETING,
        )

    async def delete(self, conversation_id: UUID) -> None:
        self._reader._store.pop(conversation_id, None)


@dataclass
class FakeParticipantReader:
    _conversations: FakeConversationReader

    async def is_participant(self, conversation_id: UUID, user_id: str) -> bool:
        conv = self._conversations._store.get(conversation_id)
        return conv is not None and conv.has_participant(user_id)


@dataclass
class FakeMessageReader:
    _messages: dict[UUID, Message] = field(default_factory=dict)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return self._messages.get(message_id)

    async def list_messages(
        self, conversation_id: UUID, *, cursor: str | None = None, limit: int = 50
    ) -> MessagePage:
        after = decode_seq_cursor(cursor) if cursor else 0
        items = sorted(
            (
                m for m in self._messages.values()
                if m.conversation_id == conversation_id and m.seq > after
            ),
            key=lambda m: m.seq,
        )[:limit]
        next_cursor = encode_seq_cursor(items[-1].seq) if len(items) == limit else None
        return MessagePage(items=items, next_cursor=next_cursor)

    async def get_by_client_msg_id(
        self, conversation_id: UUID, sender_id: str, client_msg_id: UUID
    ) -> Message | None:
        for m in self._messages.values():
            if (
                m.conversation_id == conversation_id
                and m.sender_id == sender_id
                and m.client_msg_id == client_msg_id
            ):
                return m
        return None


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def add(self, message: Message) -> Message:
        self._reader._messages[message.id] = message
        return message

    async def mark_read(self, message_ids: set[UUID], receiver_id: str) -> int:
        updated = 0
        for mid in message_ids:
            msg = self._reader._messages.get(mid)
            if msg is not None and msg.receiver_id == receiver_id and not msg.is_read:
                self._reader._messages[mid] = dataclasses.replace(msg, is_read=True)
                updated += 1
        return updated

    async def delete(self, message_id: UUID) -> None:
        self._reader._messages.pop(message_id, None)

    async def delete_for_conversation(self, conversation_id: UUID) -> int:
        doomed = [
            mid for mid, m in self._reader._messages.items()
            if m.conversation_id == conversation_id
        ]
        for mid in doomed:
            del self._reader._messages[mid]
        return len(doomed)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    participants: FakeParticipantReader | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.participants is None:
            self.participants = FakeParticipantReader(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add_conversation(self, conversation: Conversation) -> Conversation:
        self.conversations._store[conversation.id] = conversation
        return conversation

    def add_message(self, message: Message) -> Message:
        self.messages._messages[message.id] = message
        return message

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


def uow_factory_for(uow: FakeUoW):
    """Stand-in for ``sqlalchemy_uow`` that always yields the same fake."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


@dataclass
class RecordingSink:
    events: list[tuple[UUID, str, dict]] = field(default_factory=list)

    async def notify(self, room_id: UUID, event: str, data: dict) -> None:
        self.events.append((room_id, event, data))


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()

