"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import AuthenticationFailure
from volunteer_chat.application.ports.auth import TokenVerifier
from volunteer_chat.application.ports.events import EventSink
from volunteer_chat.application.uow import UnitOfWork, UoWFactory
from volunteer_chat.config import settings
from volunteer_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from volunteer_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from volunteer_chat.infrastructure.db.uow import sqlalchemy_uow
from volunteer_chat.infrastructure.ws.manager import SessionManager

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with sqlalchemy_uow() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def get_uow_factory() -> UoWFactory:
    """Per-event UoW scopes for long-lived socket handlers."""
    return sqlalchemy_uow


UoWFactoryDep = Annotated[UoWFactory, Depends(get_uow_factory)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


VerifierDep = Annotated[TokenVerifier, Depends(get_verifier)]


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: VerifierDep,
) -> Principal:
    try:
        return await verifier.verify(credentials.credentials)
    except AuthenticationFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_session_manager(conn: HTTPConnection) -> SessionManager:
    return conn.app.state.sessions


SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]


def get_event_sink(conn: HTTPConnection) -> EventSink:
    return get_session_manager(conn)


EventSinkDep = Annotated[EventSink, Depends(get_event_sink)]
