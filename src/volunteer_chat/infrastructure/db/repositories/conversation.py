from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, literal, select, update
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_chat.domain.entities.conversation import Conversation
from volunteer_chat.domain.value_objects.enums import ConversationStatus
from volunteer_chat.infrastructure.db.mappers import conversation as mapper
from volunteer_chat.infrastructure.db.models.conversation import ConversationModel
from volunteer_chat.infrastructure.db.models.participant import ParticipantModel
from volunteer_chat.infrastructure.db.repositories._cursor import decode_cursor


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(
            ConversationModel, conversation_id, populate_existing=True,
        )
        return mapper.model_to_entity(result) if result else None

    async def list_for_user(
        self,
        user_id: str,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(
                ParticipantModel.user_id == user_id,
                ConversationModel.status == ConversationStatus.ACTIVE,
            )
            .order_by(ConversationModel.created_at.desc(), ConversationModel.id)
            .limit(limit)
        )
        if cursor:
            ts, cid = decode_cursor(cursor)
            stmt = stmt.where(
                (ConversationModel.created_at < ts)
                | (
                    (ConversationModel.created_at == ts)
                    & (ConversationModel.id > cid)
                )
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_deleting(self, limit: int) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.status == ConversationStatus.DELETING)
            .order_by(ConversationModel.updated_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def append_message(
        self,
        conversation_id: UUID,
        message_id: UUID,
        ts: datetime,
    ) -> int | None:
        # single-row UPDATE: the row lock serializes concurrent appends
        stmt = (
            update(ConversationModel)
            .where(
                ConversationModel.id == conversation_id,
                ConversationModel.status == ConversationStatus.ACTIVE,
            )
            .values(
                message_ids=func.array_append(
                    ConversationModel.message_ids,
                    literal(message_id, PG_UUID(as_uuid=True)),
                ),
                message_seq=ConversationModel.message_seq + 1,
                last_message_at=ts,
            )
            .returning(ConversationModel.message_seq)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def remove_message(self, conversation_id: UUID, message_id: UUID) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(
                message_ids=func.array_remove(
                    ConversationModel.message_ids,
                    literal(message_id, PG_UUID(as_uuid=True)),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def mark_deleting(self, conversation_id: UUID) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(status=ConversationStatus.DELETING)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def delete(self, conversation_id: UUID) -> None:
        stmt = (
            delete(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
