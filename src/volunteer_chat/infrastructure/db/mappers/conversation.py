from __future__ import annotations

from volunteer_chat.domain.entities.conversation import Conversation
from volunteer_chat.infrastructure.db.models.conversation import ConversationModel
from volunteer_chat.infrastructure.db.models.participant import ParticipantModel


def model_to_entity(model: ConversationModel) -> Conversation:
    participants = sorted(model.participants, key=lambda p: p.joined_at)
    return Conversation(
        id=model.id,
        participants=tuple(p.user_id for p in participants),
        message_ids=tuple(model.message_ids or ()),
        message_seq=model.message_seq,
        name=model.name,
        is_group=model.is_group,
        status=model.status,
        created_by=model.created_by,
        last_message_at=model.last_message_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        name=entity.name,
        is_group=entity.is_group,
        status=entity.status,
        created_by=entity.created_by,
        message_ids=list(entity.message_ids),
        message_seq=entity.message_seq,
        last_message_at=entity.last_message_at,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        participants=[
            ParticipantModel(
                conversation_id=entity.id,
                user_id=user_id,
                joined_at=entity.created_at,
            )
            for user_id in entity.participants
        ],
    )
