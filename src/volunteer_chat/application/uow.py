from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from volunteer_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from volunteer_chat.application.repositories.message import MessageReader, MessageWriter
from volunteer_chat.application.repositories.participant import ParticipantReader


class UnitOfWork(Protocol):
    conversations: ConversationReader
    conversations_w: ConversationWriter
    participants: ParticipantReader
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
