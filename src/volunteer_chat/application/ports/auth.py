from __future__ import annotations

from typing import Protocol

from volunteer_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Identity check for bearer credentials issued by the main site.

    ``verify`` resolves the caller or raises ``AuthenticationFailure``; it is
    shared by the HTTP dependency and the socket handshake.
    """

    async def verify(self, token: str) -> Principal: ...
