"""Request timing and socket lifetime logging."""
from __future__ import annotations

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from volunteer_chat.api.middleware.correlation_id import correlation_id_ctx

logger = logging.getLogger(__name__)


class RequestTimingMiddleware:
    """Log latency of HTTP requests and how long each socket stayed open."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            await self._time_http(scope, receive, send)
        elif scope["type"] == "websocket":
            await self._time_websocket(scope, receive, send)
        else:
            await self.app(scope, receive, send)

    async def _time_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        start = time.perf_counter()
        status = 500

        async def capture_status(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, capture_status)
        finally:
            logger.info(
                "%s %s %s %.1fms [%s]",
                scope["method"],
                scope["path"],
                status,
                (time.perf_counter() - start) * 1000,
                correlation_id_ctx.get(),
            )

    async def _time_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        start = time.perf_counter()
        try:
            await self.app(scope, receive, send)
        finally:
            logger.info(
                "WS %s closed after %.1fs [%s]",
                scope["path"],
                time.perf_counter() - start,
                correlation_id_ctx.get(),
            )
