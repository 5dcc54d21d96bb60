from __future__ import annotations

from typing import Any

import jwt

from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import AuthenticationFailure


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    # the main site issues {"id": ...}; other issuers use "sub"
    subject = payload.get("sub") or payload.get("id")
    if not subject:
        raise AuthenticationFailure("Token has no subject")
    return Principal(user_id=str(subject))


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise AuthenticationFailure(str(exc)) from exc
        return principal_from_claims(payload)
