from __future__ import annotations

import uuid

import pytest

from volunteer_chat.services import read_state_service
from tests.conftest import ALICE, BOB, make_conversation, make_message


@pytest.fixture
def conv(uow):
    return uow.add_conversation(make_conversation())


@pytest.mark.asyncio
async def test_mark_read_flips_receiver_messages(bob, uow, conv):
    m1 = uow.add_message(make_message(conversation_id=conv.id, seq=1))
    m2 = uow.add_message(make_message(conversation_id=conv.id, seq=2))

    updated = await read_state_service.mark_read({m1.id, m2.id}, bob, uow)

    assert updated == 2
    assert (await uow.messages.get_by_id(m1.id)).is_read is True
    assert (await uow.messages.get_by_id(m2.id)).is_read is True


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(bob, uow, conv):
    m1 = uow.add_message(make_message(conversation_id=conv.id, seq=1))
    m2 = uow.add_message(make_message(conversation_id=conv.id, seq=2))

    assert await read_state_service.mark_read([m1.id], bob, uow) == 1
    assert await read_state_service.mark_read([m1.id, m2.id], bob, uow) == 1
    assert await read_state_service.mark_read([m1.id, m2.id], bob, uow) == 0

    assert all(m.is_read for m in uow.messages._messages.values())


@pytest.mark.asyncio
async def test_mark_read_by_sender_changes_nothing(alice, uow, conv):
    msg = uow.add_message(make_message(conversation_id=conv.id, sender_id=ALICE, receiver_id=BOB))

    updated = await read_state_service.mark_read([msg.id], alice, uow)

    assert updated == 0
    assert (await uow.messages.get_by_id(msg.id)).is_read is False


@pytest.mark.asyncio
async def test_mark_read_skips_unknown_ids(bob, uow, conv):
    msg = uow.add_message(make_message(conversation_id=conv.id))

    updated = await read_state_service.mark_read([msg.id, uuid.uuid4()], bob, uow)

    assert updated == 1


@pytest.mark.asyncio
async def test_mark_read_empty_set_does_not_commit(bob, uow):
    assert await read_state_service.mark_read([], bob, uow) == 0
    assert uow.commits == 0
