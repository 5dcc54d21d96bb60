from __future__ import annotations

import uuid
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str
    client_msg_id: UUID = Field(default_factory=uuid.uuid4)


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    client_msg_id: UUID
    seq: int
    created_at: datetime

    model_config = {"from_attributes": True}


class MarkReadRequest(BaseModel):
    message_ids: list[UUID]


class MarkReadResponse(BaseModel):
    updated: int
