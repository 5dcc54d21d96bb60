from __future__ import annotations

import jwt
import pytest

from volunteer_chat.application.dto.principal import Principal
from volunteer_chat.application.exceptions import AuthenticationFailure
from volunteer_chat.infrastructure.auth.hs256_verifier import HS256Verifier, principal_from_claims

SECRET = "unit-test-secret-that-is-long-enough-for-hs256"


def test_principal_carries_only_the_subject():
    principal = principal_from_claims({"sub": "alice", "roles": ["admin"], "scope": "chat"})

    assert principal == Principal(user_id="alice")


def test_id_claim_is_used_when_sub_is_missing():
    assert principal_from_claims({"id": 7}).user_id == "7"


def test_missing_subject_is_rejected():
    with pytest.raises(AuthenticationFailure):
        principal_from_claims({"roles": ["admin"]})


@pytest.mark.asyncio
async def test_verifier_rejects_wrong_secret():
    token = jwt.encode({"sub": "alice"}, "another-secret-that-is-also-long-enough", algorithm="HS256")

    with pytest.raises(AuthenticationFailure):
        await HS256Verifier(SECRET).verify(token)


@pytest.mark.asyncio
async def test_verifier_accepts_valid_token():
    token = jwt.encode({"sub": "alice"}, SECRET, algorithm="HS256")

    assert await HS256Verifier(SECRET).verify(token) == Principal(user_id="alice")
