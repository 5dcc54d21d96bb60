from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CreateConversationRequest(BaseModel):
    participant_ids: list[str] = Field(min_length=1)
    name: str | None = Field(default=None, max_length=200)
    is_group: bool = False


class ConversationResponse(BaseModel):
    id: UUID
    participants: list[str]
    message_ids: list[UUID]
    name: str | None
    is_group: bool
    created_by: str
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
