from __future__ import annotations

import logging
import uuid
from typing import Any, AsyncIterator

from volunteer_chat.application.dto.message import MessagePage, SendMessageDTO
from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import (
    ContentTooLong,
    ConversationNotFound,
    EmptyContent,
    ForbiddenError,
    InvalidParticipants,
    MessageNotFound,
)
from volunteer_chat.application.policies.permissions import assert_conversation_access
from volunteer_chat.application.ports.clock import Clock, SystemClock
from volunteer_chat.application.ports.events import EventSink
from volunteer_chat.application.uow import UnitOfWork
from volunteer_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_LENGTH = 4000

EVENT_RECEIVE = "receiveMessage"
EVENT_DELETED = "messageDeleted"

_clock: Clock = SystemClock()


def serialize_message(msg: Message) -> dict[str, Any]:
    """Wire shape of a stored message, shared by HTTP-triggered and socket relays."""
    return {
        "id": str(msg.id),
        "conversation_id": str(msg.conversation_id),
        "sender_id": msg.sender_id,
        "receiver_id": msg.receiver_id,
        "content": msg.content,
        "is_read": msg.is_read,
        "client_msg_id": str(msg.client_msg_id),
        "seq": msg.seq,
        "created_at": msg.created_at.isoformat(),
    }


def validate_content(content: str | None, max_length: int = DEFAULT_MAX_CONTENT_LENGTH) -> str:
    if content is None or not content.strip():
        raise EmptyContent("Message content is empty")
    if len(content) > max_length:
        raise ContentTooLong(f"Message content exceeds {max_length} characters")
    return content


async def send_message(
    data: SendMessageDTO,
    principal: Principal,
    uow: UnitOfWork,
    *,
    events: EventSink | None = None,
    max_length: int = DEFAULT_MAX_CONTENT_LENGTH,
) -> tuple[Message, bool]:
    """Persist a message and relay it to the conversation room.

    Returns (message, created). A message with the same client_msg_id from the
    same sender is returned as-is with created=False and is not relayed again.
    Nothing is relayed unless the message was stored.
    """
    conversation = await uow.conversations.get_by_id(data.conversation_id)
    conversation = await assert_conversation_access(principal, conversation, uow.participants)

    if data.receiver_id == principal.user_id or not conversation.has_participant(data.receiver_id):
        raise InvalidParticipants("Receiver is not another participant of this conversation")
    content = validate_content(data.content, max_length)

    existing = await uow.messages.get_by_client_msg_id(
        data.conversation_id, principal.user_id, data.client_msg_id,
    )
    if existing is not None:
        return existing, False

    now = _clock.now()
    message_id = uuid.uuid4()
    seq = await uow.conversations_w.append_message(data.conversation_id, message_id, now)
    if seq is None:
        # deleted between the access check and the append
        await uow.rollback()
        raise ConversationNotFound("Conversation not found")

    msg = await uow.messages_w.add(
        Message(
            id=message_id,
            conversation_id=data.conversation_id,
            sender_id=principal.user_id,
            receiver_id=data.receiver_id,
            content=content,
            is_read=False,
            client_msg_id=data.client_msg_id,
            seq=seq,
            created_at=now,
        )
    )
    await uow.commit()
    logger.debug("Message %s stored in %s (seq=%d)", msg.id, msg.conversation_id, msg.seq)

    if events is not None:
        await events.notify(msg.conversation_id, EVENT_RECEIVE, serialize_message(msg))
    return msg, True


async def list_messages(
    conversation_id: uuid.UUID,
    principal: Principal,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> MessagePage:
    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_conversation_access(principal, conversation, uow.participants)

    return await uow.messages.list_messages(
        conversation_id, cursor=cursor, limit=limit,
    )


async def iter_messages(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    *,
    page_size: int = 50,
) -> AsyncIterator[Message]:
    """Walk the full history page by page. Call again for a fresh read."""
    cursor: str | None = None
    while True:
        page = await list_messages(conversation_id, principal, cursor, page_size, uow)
        for msg in page.items:
            yield msg
        if page.next_cursor is None:
            return
        cursor = page.next_cursor


async def get_message(
    message_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Message:
    msg = await uow.messages.get_by_id(message_id)
    if msg is None:
        raise MessageNotFound("Message not found")
    conversation = await uow.conversations.get_by_id(msg.conversation_id)
    try:
        await assert_conversation_access(principal, conversation, uow.participants)
    except ConversationNotFound as exc:
        raise MessageNotFound("Message not found") from exc
    return msg


async def delete_message(
    message_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    *,
    events: EventSink | None = None,
) -> None:
    msg = await get_message(message_id, principal, uow)
    if msg.sender_id != principal.user_id:
        raise ForbiddenError("Only the sender can delete a message")

    await uow.messages_w.delete(message_id)
    await uow.conversations_w.remove_message(msg.conversation_id, message_id)
    await uow.commit()
    logger.debug("Message %s deleted by %s", message_id, principal.user_id)

    if events is not None:
        await events.notify(
            msg.conversation_id,
            EVENT_DELETED,
            {"conversation_id": str(msg.conversation_id), "message_id": str(message_id)},
        )
