from __future__ import annotations

from volunteer_chat.domain.entities.message import Message
from volunteer_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        content=model.content,
        is_read=model.is_read,
        client_msg_id=model.client_msg_id,
        seq=model.seq,
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        content=entity.content,
        is_read=entity.is_read,
        client_msg_id=entity.client_msg_id,
        seq=entity.seq,
        created_at=entity.created_at,
    )
