"""In-process WebSocket session manager.

Each live connection gets a :class:`Session` with its own bounded outbound
queue drained by a writer task. Relaying a room event enqueues the frame on
every member synchronously, so within this process all peers of a room see
events in the order they were relayed, and a slow or dead peer never holds
up the others.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any
from uuid import UUID

from fastapi import WebSocket

from volunteer_chat.domain.value_objects.enums import SessionState
from volunteer_chat.infrastructure.ws.protocol import CLOSE_AUTH_FAILED, CONNECT_ERROR, frame

logger = logging.getLogger(__name__)


class Session:
    """Server-side state of one socket connection."""

    def __init__(self, ws: WebSocket, queue_size: int = 256) -> None:
        self.connection_id = uuid.uuid4().hex
        self.ws = ws
        self.user_id: str | None = None
        self.state = SessionState.CONNECTING
        self.rooms: set[UUID] = set()
        self._outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task[None] | None = None
        self._closer: asyncio.Task[None] | None = None

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def start(self) -> None:
        self._writer = asyncio.create_task(
            self._write_loop(), name=f"ws-writer-{self.connection_id}",
        )

    def enqueue(self, raw: str) -> bool:
        """Queue a frame for this peer. False if the peer is gone or too far behind."""
        if self.state == SessionState.CLOSED:
            return False
        try:
            self._outbox.put_nowait(raw)
        except asyncio.QueueFull:
            return False
        return True

    async def drain(self) -> None:
        """Wait until every queued frame has been written (or dropped)."""
        await self._outbox.join()

    async def stop(self) -> None:
        self.state = SessionState.CLOSED
        if self._writer is not None and not self._writer.done():
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
        self._drop_pending()

    def abort(self, code: int = 1011) -> None:
        """Close a peer from outside its own handler, without awaiting."""
        if self.state == SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        if self._writer is not None:
            self._writer.cancel()
        self._drop_pending()
        self._closer = asyncio.create_task(self.close_transport(code))

    async def _write_loop(self) -> None:
        while True:
            raw = await self._outbox.get()
            try:
                await self.ws.send_text(raw)
            except Exception:
                logger.debug("WS write failed for %s", self.connection_id, exc_info=True)
                self.state = SessionState.CLOSED
                self._drop_pending()
                return
            finally:
                self._outbox.task_done()

    def _drop_pending(self) -> None:
        while not self._outbox.empty():
            self._outbox.get_nowait()
            self._outbox.task_done()

    async def close_transport(self, code: int) -> None:
        try:
            await self.ws.close(code=code)
        except Exception:
            logger.debug("WS close failed for %s", self.connection_id, exc_info=True)


class SessionManager:
    """Tracks active sessions and their conversation rooms.

    Implements ``application.ports.events.EventSink``.
    """

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._sessions: dict[str, Session] = {}
        self._rooms: dict[UUID, set[str]] = {}

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def room_members(self, room_id: UUID) -> set[str]:
        return set(self._rooms.get(room_id, ()))

    async def open(self, ws: WebSocket) -> Session:
        await ws.accept()
        session = Session(ws, self._queue_size)
        session.start()
        return session

    def activate(self, session: Session, user_id: str) -> None:
        if session.state != SessionState.CONNECTING:
            raise RuntimeError(f"Cannot activate session in state {session.state}")
        session.user_id = user_id
        session.state = SessionState.ACTIVE
        self._sessions[session.connection_id] = session
        logger.debug(
            "WS session %s active for %s (total=%d)",
            session.connection_id, user_id, len(self._sessions),
        )

    async def reject(self, session: Session, reason: str) -> None:
        """Report a failed handshake and close. The session is never registered."""
        session.enqueue(frame(CONNECT_ERROR, {"reason": reason}))
        await session.drain()
        await session.stop()
        session.state = SessionState.REJECTED
        try:
            await session.ws.close(code=CLOSE_AUTH_FAILED, reason=reason)
        except Exception:
            logger.debug("WS close after rejection failed", exc_info=True)
        logger.debug("WS session %s rejected: %s", session.connection_id, reason)

    def join(self, session: Session, room_id: UUID) -> bool:
        if not session.is_active:
            return False
        session.rooms.add(room_id)
        self._rooms.setdefault(room_id, set()).add(session.connection_id)
        return True

    def leave(self, session: Session, room_id: UUID) -> None:
        session.rooms.discard(room_id)
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(session.connection_id)
            if not members:
                del self._rooms[room_id]

    async def close(self, session: Session) -> None:
        self._discard(session)
        await session.stop()
        logger.debug("WS session %s closed", session.connection_id)

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await self.close(session)
            await session.close_transport(1001)

    def send(self, session: Session, event: str, data: dict[str, Any] | None = None) -> None:
        """Queue a frame for a single session."""
        if not session.enqueue(frame(event, data)):
            self._drop(session)

    def relay(self, room_id: UUID, event: str, data: dict[str, Any]) -> int:
        """Queue an event for every session in the room. Returns how many accepted it."""
        raw = frame(event, data)
        delivered = 0
        dropped: list[Session] = []
        for connection_id in list(self._rooms.get(room_id, ())):
            session = self._sessions.get(connection_id)
            if session is None:
                continue
            if session.enqueue(raw):
                delivered += 1
            else:
                dropped.append(session)
        for session in dropped:
            self._drop(session)
        return delivered

    async def notify(self, room_id: UUID, event: str, data: dict[str, Any]) -> None:
        self.relay(room_id, event, data)

    def _drop(self, session: Session) -> None:
        logger.debug("Dropping unresponsive WS session %s", session.connection_id)
        self._discard(session)
        session.abort()

    def _discard(self, session: Session) -> None:
        self._sessions.pop(session.connection_id, None)
        for room_id in list(session.rooms):
            self.leave(session, room_id)
