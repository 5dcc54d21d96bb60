from __future__ import annotations

from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import ConversationNotFound, ForbiddenError
from volunteer_chat.application.repositories.participant import ParticipantReader
from volunteer_chat.domain.entities.conversation import Conversation


async def assert_conversation_access(
    principal: Principal,
    conversation: Conversation | None,
    participants: ParticipantReader,
) -> Conversation:
    """Raise if conversation doesn't exist, is being deleted, or principal is not a member."""
    if conversation is None or not conversation.is_active:
        raise ConversationNotFound("Conversation not found")

    is_member = await participants.is_participant(conversation.id, principal.user_id)
    if not is_member:
        raise ForbiddenError("Not a participant of this conversation")

    return conversation
