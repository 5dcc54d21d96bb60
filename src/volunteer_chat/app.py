from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from volunteer_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from volunteer_chat.api.middleware.metrics import RequestTimingMiddleware
from volunteer_chat.api.v1.routers import (
    conversations,
    health,
    messages,
    ws,
)
from volunteer_chat.api.v1.schemas.common import ErrorResponse
from volunteer_chat.application.exceptions import (
    AppError,
    AuthenticationFailure,
    ForbiddenError,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)
from volunteer_chat.config import settings
from volunteer_chat.infrastructure.db.session import engine
from volunteer_chat.infrastructure.ws.manager import SessionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    logger.info("Chat service starting")

    yield

    await app.state.sessions.close_all()
    await engine.dispose()
    logger.info("Chat service stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Volunteer Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.sessions = SessionManager(queue_size=settings.WS_SEND_QUEUE_SIZE)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _error(status_code: int, exc: AppError) -> JSONResponse:
    body = ErrorResponse(detail=exc.detail, code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(403, exc)

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, exc)

    @app.exception_handler(AuthenticationFailure)
    async def _unauthenticated(_req: Request, exc: AuthenticationFailure) -> JSONResponse:
        return _error(401, exc)

    @app.exception_handler(PersistenceFailure)
    async def _unavailable(_req: Request, exc: PersistenceFailure) -> JSONResponse:
        return _error(503, exc)
