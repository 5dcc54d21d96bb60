from __future__ import annotations

import logging
import uuid

from volunteer_chat.application.dto.conversation import CreateConversationDTO
from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import InvalidParticipants
from volunteer_chat.application.policies.permissions import assert_conversation_access
from volunteer_chat.application.ports.clock import Clock, SystemClock
from volunteer_chat.application.uow import UnitOfWork
from volunteer_chat.domain.entities.conversation import Conversation
from volunteer_chat.domain.value_objects.enums import ConversationStatus

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def create_conversation(
    principal: Principal,
    data: CreateConversationDTO,
    uow: UnitOfWork,
) -> Conversation:
    """Create a conversation between the caller and ``data.participant_ids``.

    The creator is always a participant. Identical participant sets are not
    deduplicated; callers that want "one chat per pair" look it up first.
    """
    participants: list[str] = []
    for user_id in [principal.user_id, *data.participant_ids]:
        user_id = user_id.strip()
        if user_id and user_id not in participants:
            participants.append(user_id)
    if len(participants) < 2:
        raise InvalidParticipants("A conversation needs at least two distinct participants")

    now = _clock.now()
    conversation = Conversation(
        id=uuid.uuid4(),
        participants=tuple(participants),
        message_ids=(),
        message_seq=0,
        name=data.name,
        is_group=data.is_group or len(participants) > 2,
        status=ConversationStatus.ACTIVE,
        created_by=principal.user_id,
        last_message_at=None,
        created_at=now,
        updated_at=now,
    )
    conversation = await uow.conversations_w.create(conversation)
    await uow.commit()
    logger.info(
        "Conversation %s created by %s (%d participants)",
        conversation.id, principal.user_id, len(participants),
    )
    return conversation


async def list_user_conversations(
    principal: Principal,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Conversation]:
    return await uow.conversations.list_for_user(
        principal.user_id, cursor=cursor, limit=limit,
    )


async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return await assert_conversation_access(principal, conversation, uow.participants)


async def delete_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    """Delete a conversation and every message in it.

    The conversation is first committed as ``deleting`` so that it disappears
    from every read and write path; messages and the record itself are then
    removed in a second transaction. A crash between the two leaves a
    ``deleting`` conversation that :func:`purge_deleting_conversations` finishes.
    """
    conversation = await uow.conversations.get_by_id(conversation_id)
    await assert_conversation_access(principal, conversation, uow.participants)

    await uow.conversations_w.mark_deleting(conversation_id)
    await uow.commit()

    removed = await _purge(conversation_id, uow)
    logger.info(
        "Conversation %s deleted by %s (%d messages)",
        conversation_id, principal.user_id, removed,
    )


async def purge_deleting_conversations(uow: UnitOfWork, limit: int = 100) -> int:
    """Finish deletes that were interrupted after the first phase."""
    pending = await uow.conversations.list_deleting(limit)
    for conversation in pending:
        removed = await _purge(conversation.id, uow)
        logger.info("Purged conversation %s (%d messages)", conversation.id, removed)
    return len(pending)


async def _purge(conversation_id: uuid.UUID, uow: UnitOfWork) -> int:
    removed = await uow.messages_w.delete_for_conversation(conversation_id)
    await uow.conversations_w.delete(conversation_id)
    await uow.commit()
    return removed
