"""Async client for the chat socket and REST endpoints.

Keeps a :class:`ConversationTimeline` per joined conversation. After a
dropped connection it reconnects with exponential backoff, re-joins every
room, refetches history and re-sends messages that never got confirmed;
the server dedupes them by ``client_msg_id``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable
from uuid import UUID

import httpx
from pydantic import ValidationError as PayloadError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from volunteer_chat.application.exceptions import AuthenticationFailure
from volunteer_chat.client.timeline import (
    ConversationTimeline,
    PendingMessage,
    message_from_payload,
)
from volunteer_chat.domain.entities.message import Message
from volunteer_chat.infrastructure.ws import protocol
from volunteer_chat.infrastructure.ws.protocol import WsInbound, WsOutbound

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 30.0

Connector = Callable[[str], Awaitable[ClientConnection]]


def _calc_backoff(attempts: int) -> float:
    return min(BASE_DELAY_SECONDS * (2 ** attempts), MAX_DELAY_SECONDS)


class ChatClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        http: httpx.AsyncClient | None = None,
        connector: Connector = connect,
        page_size: int = 100,
    ) -> None:
        base_url = base_url.rstrip("/")
        self._ws_url = base_url.replace("http", "ws", 1) + "/ws/chat"
        self._token = token
        self._http = http or httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
        )
        self._connector = connector
        self._page_size = page_size
        self._ws: ClientConnection | None = None
        self._joined: set[UUID] = set()
        self._closed = False
        self.user_id: str | None = None
        self.timelines: dict[UUID, ConversationTimeline] = {}

    async def connect(self) -> None:
        """Open the socket and authenticate with an ``auth`` frame."""
        ws = await self._connector(self._ws_url)
        await ws.send(WsInbound(type=protocol.AUTH, data={"token": self._token}).model_dump_json())
        reply = WsOutbound.model_validate_json(await ws.recv())
        if reply.type != protocol.CONNECTED:
            await ws.close()
            raise AuthenticationFailure(reply.data.get("reason", "Unexpected handshake reply"))
        self._ws = ws
        self.user_id = reply.data["user_id"]
        logger.info("Connected as %s (%s)", self.user_id, reply.data.get("connection_id"))

    async def join(self, conversation_id: UUID) -> ConversationTimeline:
        timeline = self._timeline(conversation_id)
        self._joined.add(conversation_id)
        await self._emit(protocol.JOIN_CHAT, {"conversation_id": str(conversation_id)})
        await self.refresh(conversation_id)
        return timeline

    async def leave(self, conversation_id: UUID) -> None:
        self._joined.discard(conversation_id)
        await self._emit(protocol.LEAVE_CHAT, {"conversation_id": str(conversation_id)})

    async def send(self, conversation_id: UUID, receiver_id: str, content: str) -> PendingMessage:
        pending = self._timeline(conversation_id).add_pending(content, receiver_id)
        await self._emit(protocol.SEND_MESSAGE, pending.to_payload())
        return pending

    async def refresh(self, conversation_id: UUID) -> list[PendingMessage]:
        """Refetch the full history and merge it; returns still-pending sends."""
        timeline = self._timeline(conversation_id)
        timeline.begin_refresh()
        try:
            history = await self.fetch_history(conversation_id)
        except Exception:
            timeline.abort_refresh()
            raise
        return timeline.apply_snapshot(history)

    async def fetch_history(self, conversation_id: UUID) -> list[Message]:
        messages: list[Message] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"limit": self._page_size}
            if cursor:
                params["cursor"] = cursor
            resp = await self._http.get(
                f"/api/v1/chat/conversations/{conversation_id}/messages", params=params,
            )
            resp.raise_for_status()
            page = resp.json()
            messages.extend(message_from_payload(item) for item in page["items"])
            cursor = page.get("next_cursor")
            if not cursor:
                return messages

    async def mark_read(self, conversation_id: UUID) -> int:
        """Mark everything addressed to us in this conversation as read."""
        timeline = self._timeline(conversation_id)
        ids = timeline.unread_for_me()
        if not ids:
            return 0
        resp = await self._http.patch(
            "/api/v1/chat/messages/mark-read",
            json={"message_ids": [str(mid) for mid in ids]},
        )
        resp.raise_for_status()
        timeline.mark_read_locally(ids)
        return resp.json()["updated"]

    def handle_frame(self, raw: str | bytes) -> str | None:
        """Apply one server frame to the timelines. Returns the event type."""
        try:
            frame = WsOutbound.model_validate_json(raw)
        except PayloadError:
            logger.warning("Dropping malformed frame")
            return None

        data = frame.data
        if frame.type == protocol.RECEIVE_MESSAGE:
            msg = message_from_payload(data)
            timeline = self.timelines.get(msg.conversation_id)
            if timeline is not None:
                timeline.apply_received(msg)
        elif frame.type == protocol.MESSAGE_DELETED:
            timeline = self.timelines.get(UUID(data["conversation_id"]))
            if timeline is not None:
                timeline.apply_deleted(UUID(data["message_id"]))
        elif frame.type == protocol.ERROR:
            self._handle_error(data)
        return frame.type

    async def listen(self) -> None:
        """Consume frames until :meth:`close`, reconnecting on transport loss."""
        while not self._closed:
            ws = self._ws
            if ws is None:
                await self._reconnect()
                continue
            try:
                async for raw in ws:
                    self.handle_frame(raw)
            except ConnectionClosed:
                logger.info("Connection lost")
            self._ws = None

    async def close(self) -> None:
        self._closed = True
        await self._drop_connection()
        await self._http.aclose()

    async def _drop_connection(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    async def _reconnect(self) -> None:
        attempts = 0
        while not self._closed:
            try:
                await self.connect()
                await self._resync()
                return
            except (OSError, ConnectionClosed, InvalidHandshake, InvalidURI, httpx.HTTPError):
                # a half-synced session would stay registered in its rooms
                await self._drop_connection()
                delay = _calc_backoff(attempts)
                attempts += 1
                logger.warning("Reconnect attempt %d failed, retrying in %.1fs", attempts, delay)
                await asyncio.sleep(delay)

    async def _resync(self) -> None:
        for conversation_id in list(self._joined):
            await self._emit(protocol.JOIN_CHAT, {"conversation_id": str(conversation_id)})
            for pending in await self.refresh(conversation_id):
                if pending.error is None:
                    await self._emit(protocol.SEND_MESSAGE, pending.to_payload())

    async def _emit(self, event: str, data: dict[str, Any]) -> None:
        if self._ws is None:
            raise ConnectionError("Not connected")
        await self._ws.send(WsInbound(type=event, data=data).model_dump_json())

    def _handle_error(self, data: dict[str, Any]) -> None:
        code = data.get("code", "error")
        raw_client_id = data.get("client_msg_id")
        if raw_client_id is None:
            logger.warning("Server error: %s %s", code, data.get("detail", ""))
            return
        client_msg_id = UUID(raw_client_id)
        for timeline in self.timelines.values():
            if timeline.fail_pending(client_msg_id, code) is not None:
                logger.warning("Send %s rejected: %s", client_msg_id, code)
                return

    def _timeline(self, conversation_id: UUID) -> ConversationTimeline:
        timeline = self.timelines.get(conversation_id)
        if timeline is None:
            if self.user_id is None:
                raise ConnectionError("Not connected")
            timeline = ConversationTimeline(conversation_id, self.user_id)
            self.timelines[conversation_id] = timeline
        return timeline
