from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from volunteer_chat.api.deps import CurrentPrincipal, UoWDep
from volunteer_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    CreateConversationRequest,
)
from volunteer_chat.application.dto.conversation import CreateConversationDTO
from volunteer_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    body: CreateConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.create_conversation(
        principal,
        CreateConversationDTO(
            participant_ids=body.participant_ids,
            name=body.name,
            is_group=body.is_group,
        ),
        uow,
    )
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> list[ConversationResponse]:
    convs = await conversation_service.list_user_conversations(
        principal, cursor, limit, uow,
    )
    return [ConversationResponse.model_validate(c, from_attributes=True) for c in convs]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    await conversation_service.delete_conversation(conversation_id, principal, uow)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
