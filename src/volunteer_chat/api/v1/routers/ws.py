from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError

from volunteer_chat.api.deps import SessionManagerDep, UoWFactoryDep, VerifierDep
from volunteer_chat.application.dto.message import SendMessageDTO
from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import AppError, AuthenticationFailure
from volunteer_chat.application.ports.auth import TokenVerifier
from volunteer_chat.application.uow import UoWFactory
from volunteer_chat.config import settings
from volunteer_chat.infrastructure.ws import protocol
from volunteer_chat.infrastructure.ws.manager import Session, SessionManager
from volunteer_chat.infrastructure.ws.protocol import WsInbound
from volunteer_chat.services import conversation_service, message_service, read_state_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    sessions: SessionManagerDep,
    verifier: VerifierDep,
    uow_factory: UoWFactoryDep,
    token: str | None = Query(None),
) -> None:
    session = await sessions.open(websocket)
    try:
        principal = await _handshake(websocket, verifier, token)
    except WebSocketDisconnect:
        await sessions.close(session)
        return
    except AuthenticationFailure as exc:
        logger.debug("WS auth failed: %s", exc.detail)
        await sessions.reject(session, exc.detail or "Authentication failed")
        return

    sessions.activate(session, principal.user_id)
    sessions.send(
        session,
        protocol.CONNECTED,
        {"connection_id": session.connection_id, "user_id": principal.user_id},
    )

    heartbeat_task = asyncio.create_task(
        _heartbeat(sessions, session), name=f"ws-heartbeat-{session.connection_id}",
    )
    try:
        await _read_loop(websocket, session, principal, sessions, uow_factory)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.user_id)
    finally:
        heartbeat_task.cancel()
        await sessions.close(session)


async def _handshake(
    ws: WebSocket,
    verifier: TokenVerifier,
    token: str | None,
) -> Principal:
    """Resolve the caller from the query token or a first ``auth`` frame."""
    try:
        async with asyncio.timeout(settings.WS_AUTH_TIMEOUT_SECONDS):
            if not token:
                token = await _read_auth_token(ws)
            return await verifier.verify(token)
    except TimeoutError as exc:
        raise AuthenticationFailure("Authentication timeout") from exc


async def _read_auth_token(ws: WebSocket) -> str:
    raw = await ws.receive_text()
    try:
        msg = WsInbound.model_validate_json(raw)
    except PayloadError as exc:
        raise AuthenticationFailure("Expected an auth frame") from exc
    token = msg.data.get("token")
    if msg.type != protocol.AUTH or not isinstance(token, str) or not token:
        raise AuthenticationFailure("Expected an auth frame")
    return token


async def _heartbeat(sessions: SessionManager, session: Session) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while session.is_active:
            await asyncio.sleep(interval)
            sessions.send(session, protocol.PONG)
    except asyncio.CancelledError:
        pass


async def _read_loop(
    ws: WebSocket,
    session: Session,
    principal: Principal,
    sessions: SessionManager,
    uow_factory: UoWFactory,
) -> None:
    while session.is_active:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PayloadError:
            sessions.send(session, protocol.ERROR, {"code": "invalid_payload"})
            continue

        if msg.type == protocol.PING:
            sessions.send(session, protocol.PONG)

        elif msg.type == protocol.JOIN_CHAT:
            await _handle_join(session, principal, sessions, uow_factory, msg.data)

        elif msg.type == protocol.LEAVE_CHAT:
            conversation_id = _parse_uuid(msg.data.get("conversation_id"))
            if conversation_id is not None:
                sessions.leave(session, conversation_id)

        elif msg.type == protocol.SEND_MESSAGE:
            await _handle_send(session, principal, sessions, uow_factory, msg.data)

        elif msg.type == protocol.MARK_READ:
            await _handle_mark_read(session, principal, sessions, uow_factory, msg.data)

        else:
            sessions.send(
                session, protocol.ERROR, {"code": "unknown_type", "type": msg.type},
            )


def _parse_uuid(value: Any) -> UUID | None:
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def _send_error(
    sessions: SessionManager,
    session: Session,
    exc: AppError,
    **extra: Any,
) -> None:
    sessions.send(session, protocol.ERROR, {"code": exc.code, "detail": exc.detail, **extra})


async def _handle_join(
    session: Session,
    principal: Principal,
    sessions: SessionManager,
    uow_factory: UoWFactory,
    data: dict[str, Any],
) -> None:
    conversation_id = _parse_uuid(data.get("conversation_id"))
    if conversation_id is None:
        sessions.send(session, protocol.ERROR, {"code": "invalid_data", "detail": "conversation_id"})
        return

    try:
        async with uow_factory() as uow:
            await conversation_service.get_conversation(conversation_id, principal, uow)
    except AppError as exc:
        _send_error(sessions, session, exc, conversation_id=str(conversation_id))
        return

    if sessions.join(session, conversation_id):
        sessions.send(session, protocol.JOINED_CHAT, {"conversation_id": str(conversation_id)})


async def _handle_send(
    session: Session,
    principal: Principal,
    sessions: SessionManager,
    uow_factory: UoWFactory,
    data: dict[str, Any],
) -> None:
    conversation_id = _parse_uuid(data.get("conversation_id"))
    receiver_id = data.get("receiver_id")
    raw_client_id = data.get("client_msg_id")
    client_msg_id = _parse_uuid(raw_client_id) if raw_client_id is not None else uuid.uuid4()
    if conversation_id is None or client_msg_id is None or not isinstance(receiver_id, str):
        sessions.send(
            session,
            protocol.ERROR,
            {"code": "invalid_data", "detail": "conversation_id, receiver_id, client_msg_id"},
        )
        return

    content = data.get("content")
    dto = SendMessageDTO(
        conversation_id=conversation_id,
        receiver_id=receiver_id,
        content=content if isinstance(content, str) else "",
        client_msg_id=client_msg_id,
    )
    try:
        async with uow_factory() as uow:
            msg, created = await message_service.send_message(
                dto,
                principal,
                uow,
                events=sessions,
                max_length=settings.MESSAGE_MAX_LENGTH,
            )
    except AppError as exc:
        _send_error(sessions, session, exc, client_msg_id=str(client_msg_id))
        return

    if not created:
        # a resend of something already stored: confirm it to the sender only
        sessions.send(session, protocol.RECEIVE_MESSAGE, message_service.serialize_message(msg))


async def _handle_mark_read(
    session: Session,
    principal: Principal,
    sessions: SessionManager,
    uow_factory: UoWFactory,
    data: dict[str, Any],
) -> None:
    raw_ids = data.get("message_ids")
    if not isinstance(raw_ids, list):
        sessions.send(session, protocol.ERROR, {"code": "invalid_data", "detail": "message_ids"})
        return
    ids = {mid for mid in (_parse_uuid(v) for v in raw_ids) if mid is not None}

    try:
        async with uow_factory() as uow:
            updated = await read_state_service.mark_read(ids, principal, uow)
    except AppError as exc:
        _send_error(sessions, session, exc)
        return
    sessions.send(session, protocol.MARKED_READ, {"updated": updated})
