from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from volunteer_chat.api.deps import CurrentPrincipal, EventSinkDep, UoWDep
from volunteer_chat.api.v1.schemas.common import PaginatedResponse
from volunteer_chat.api.v1.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
)
from volunteer_chat.application.dto.message import SendMessageDTO
from volunteer_chat.config import settings
from volunteer_chat.services import message_service, read_state_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=PaginatedResponse[MessageResponse],
)
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(settings.MESSAGES_PAGE_LIMIT, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    page = await message_service.list_messages(
        conversation_id, principal, cursor, limit, uow,
    )
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(m, from_attributes=True) for m in page.items],
        next_cursor=page.next_cursor,
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventSinkDep,
) -> MessageResponse:
    msg, _created = await message_service.send_message(
        SendMessageDTO(
            conversation_id=conversation_id,
            receiver_id=body.receiver_id,
            content=body.content,
            client_msg_id=body.client_msg_id,
        ),
        principal,
        uow,
        events=events,
        max_length=settings.MESSAGE_MAX_LENGTH,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.patch("/messages/mark-read", response_model=MarkReadResponse)
async def mark_read(
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    updated = await read_state_service.mark_read(body.message_ids, principal, uow)
    return MarkReadResponse(updated=updated)


@router.get("/messages/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    msg = await message_service.get_message(message_id, principal, uow)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    events: EventSinkDep,
) -> Response:
    await message_service.delete_message(message_id, principal, uow, events=events)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
