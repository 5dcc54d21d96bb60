from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_chat.application.dto.message import MessagePage
from volunteer_chat.domain.entities.message import Message
from volunteer_chat.infrastructure.db.mappers import message as mapper
from volunteer_chat.infrastructure.db.models.message import MessageModel
from volunteer_chat.infrastructure.db.repositories._cursor import (
    decode_seq_cursor,
    encode_seq_cursor,
)


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        model = await self._session.get(MessageModel, message_id, populate_existing=True)
        return mapper.model_to_entity(model) if model else None

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> MessagePage:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.seq.asc())
            .limit(limit)
        )
        if cursor:
            stmt = stmt.where(MessageModel.seq > decode_seq_cursor(cursor))
        result = await self._session.execute(stmt)
        items = [mapper.model_to_entity(m) for m in result.scalars().all()]
        next_cursor = encode_seq_cursor(items[-1].seq) if len(items) == limit else None
        return MessagePage(items=items, next_cursor=next_cursor)

    async def get_by_client_msg_id(
        self,
        conversation_id: UUID,
        sender_id: str,
        client_msg_id: UUID,
    ) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.conversation_id == conversation_id,
            MessageModel.sender_id == sender_id,
            MessageModel.client_msg_id == client_msg_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_read(self, message_ids: set[UUID], receiver_id: str) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id.in_(message_ids),
                MessageModel.receiver_id == receiver_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def delete(self, message_id: UUID) -> None:
        stmt = (
            delete(MessageModel)
            .where(MessageModel.id == message_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def delete_for_conversation(self, conversation_id: UUID) -> int:
        stmt = (
            delete(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
