"""WebSocket session tests over TestClient (one shared event loop)."""
from __future__ import annotations

import uuid

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from volunteer_chat.api.deps import get_uow, get_uow_factory
from volunteer_chat.app import create_app
from volunteer_chat.config import settings
from tests.conftest import ALICE, BOB, CAROL, FakeUoW, make_conversation, uow_factory_for


def _token(sub: str) -> str:
    return jwt.encode({"sub": sub}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def client(uow):
    app = create_app()

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory_for(uow)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def conv(uow):
    return uow.add_conversation(make_conversation(participants=(ALICE, BOB)))


def _connect(client, user_id):
    ws = client.websocket_connect(f"/ws/chat?token={_token(user_id)}")
    session = ws.__enter__()
    hello = session.receive_json()
    assert hello["type"] == "connected"
    assert hello["data"]["user_id"] == user_id
    return ws, session


@pytest.fixture
def connect(client):
    opened = []

    def _open(user_id):
        ws, session = _connect(client, user_id)
        opened.append(ws)
        return session

    yield _open
    for ws in reversed(opened):
        ws.__exit__(None, None, None)


def _join(session, conversation_id):
    session.send_json({"type": "joinChat", "data": {"conversation_id": str(conversation_id)}})
    return session.receive_json()


def _send(session, conversation_id, content, receiver=BOB, client_msg_id=None):
    data = {"conversation_id": str(conversation_id), "receiver_id": receiver, "content": content}
    if client_msg_id is not None:
        data["client_msg_id"] = str(client_msg_id)
    session.send_json({"type": "sendMessage", "data": data})


def _assert_nothing_pending(session):
    """A ping round-trip proves no other frame was queued ahead of it."""
    session.send_json({"type": "ping"})
    assert session.receive_json()["type"] == "pong"


def test_auth_frame_handshake(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_json({"type": "auth", "data": {"token": _token(ALICE)}})
        hello = ws.receive_json()

    assert hello["type"] == "connected"
    assert hello["data"]["user_id"] == ALICE


def test_bad_token_is_rejected(client):
    with client.websocket_connect("/ws/chat?token=garbage") as ws:
        error = ws.receive_json()
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()

    assert error["type"] == "connect_error"
    assert exc.value.code == 4001


def test_non_auth_first_frame_is_rejected(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_json({"type": "joinChat", "data": {}})
        error = ws.receive_json()

    assert error["type"] == "connect_error"


def test_handshake_timeout(client, monkeypatch):
    monkeypatch.setattr(settings, "WS_AUTH_TIMEOUT_SECONDS", 0.05)

    with client.websocket_connect("/ws/chat") as ws:
        error = ws.receive_json()

    assert error == {"type": "connect_error", "data": {"reason": "Authentication timeout"}}


def test_message_reaches_every_room_member(connect, uow, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    assert _join(alice, conv.id) == {"type": "joinedChat", "data": {"conversation_id": str(conv.id)}}
    assert _join(bob, conv.id)["type"] == "joinedChat"

    _send(alice, conv.id, "Hi")

    to_bob = bob.receive_json()
    to_alice = alice.receive_json()
    assert to_bob["type"] == "receiveMessage"
    assert to_bob == to_alice
    assert to_bob["data"]["sender_id"] == ALICE
    assert to_bob["data"]["content"] == "Hi"
    assert uuid.UUID(to_bob["data"]["id"]) in uow.messages._messages


def test_room_isolation(connect, uow, conv):
    other = uow.add_conversation(make_conversation(participants=(BOB, CAROL)))
    alice = connect(ALICE)
    bob = connect(BOB)
    carol = connect(CAROL)
    _join(alice, conv.id)
    _join(bob, conv.id)
    _join(carol, other.id)

    _send(alice, conv.id, "only for bob")
    assert bob.receive_json()["type"] == "receiveMessage"

    _assert_nothing_pending(carol)


def test_join_refused_for_non_member(connect, conv):
    carol = connect(CAROL)

    reply = _join(carol, conv.id)

    assert reply["type"] == "error"
    assert reply["data"]["code"] == "forbidden"

    alice = connect(ALICE)
    _join(alice, conv.id)
    _send(alice, conv.id, "secret")
    alice.receive_json()
    _assert_nothing_pending(carol)


def test_join_unknown_conversation(connect):
    alice = connect(ALICE)

    reply = _join(alice, uuid.uuid4())

    assert reply["data"]["code"] == "conversation_not_found"


def test_messages_arrive_in_send_order(connect, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    _join(alice, conv.id)
    _join(bob, conv.id)

    for i in range(5):
        _send(alice, conv.id, f"m{i}")

    received = [bob.receive_json()["data"] for _ in range(5)]
    assert [m["content"] for m in received] == [f"m{i}" for i in range(5)]
    assert [m["seq"] for m in received] == [1, 2, 3, 4, 5]


def test_invalid_send_goes_back_to_sender_only(connect, uow, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    _join(alice, conv.id)
    _join(bob, conv.id)
    client_msg_id = uuid.uuid4()

    _send(alice, conv.id, "   ", client_msg_id=client_msg_id)

    error = alice.receive_json()
    assert error["type"] == "error"
    assert error["data"]["code"] == "empty_content"
    assert error["data"]["client_msg_id"] == str(client_msg_id)
    assert uow.messages._messages == {}
    _assert_nothing_pending(bob)


def test_resend_is_confirmed_without_duplicate(connect, uow, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    _join(alice, conv.id)
    _join(bob, conv.id)
    client_msg_id = uuid.uuid4()

    _send(alice, conv.id, "once", client_msg_id=client_msg_id)
    first = alice.receive_json()
    _send(alice, conv.id, "once", client_msg_id=client_msg_id)
    again = alice.receive_json()

    assert again == first
    assert bob.receive_json() == first
    _assert_nothing_pending(bob)
    assert len(uow.messages._messages) == 1


def test_mark_read_over_socket(connect, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    _join(alice, conv.id)
    _join(bob, conv.id)
    _send(alice, conv.id, "read me")
    msg_id = bob.receive_json()["data"]["id"]
    alice.receive_json()

    for expected in (1, 0):
        bob.send_json({"type": "markRead", "data": {"message_ids": [msg_id]}})
        assert bob.receive_json() == {"type": "markedRead", "data": {"updated": expected}}

    # the sender is not notified
    _assert_nothing_pending(alice)


def test_http_send_reaches_live_sockets(client, connect, conv):
    bob = connect(BOB)
    _join(bob, conv.id)

    resp = client.post(
        f"/api/v1/chat/conversations/{conv.id}/messages",
        headers={"Authorization": f"Bearer {_token(ALICE)}"},
        json={"receiver_id": BOB, "content": "via http"},
    )

    assert resp.status_code == 201
    frame = bob.receive_json()
    assert frame["type"] == "receiveMessage"
    assert frame["data"]["id"] == resp.json()["id"]


def test_deleted_message_is_broadcast(client, connect, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    _join(alice, conv.id)
    _join(bob, conv.id)
    _send(alice, conv.id, "oops")
    msg_id = bob.receive_json()["data"]["id"]
    alice.receive_json()

    resp = client.delete(
        f"/api/v1/chat/messages/{msg_id}",
        headers={"Authorization": f"Bearer {_token(ALICE)}"},
    )

    assert resp.status_code == 204
    assert bob.receive_json() == {
        "type": "messageDeleted",
        "data": {"conversation_id": str(conv.id), "message_id": msg_id},
    }


def test_leave_stops_delivery(connect, conv):
    alice = connect(ALICE)
    bob = connect(BOB)
    _join(alice, conv.id)
    _join(bob, conv.id)
    bob.send_json({"type": "leaveChat", "data": {"conversation_id": str(conv.id)}})
    _assert_nothing_pending(bob)

    _send(alice, conv.id, "anyone?")
    alice.receive_json()

    _assert_nothing_pending(bob)


def test_unknown_and_malformed_frames(connect):
    alice = connect(ALICE)

    alice.send_json({"type": "dance", "data": {}})
    assert alice.receive_json()["data"]["code"] == "unknown_type"

    alice.send_text("{not json")
    assert alice.receive_json()["data"]["code"] == "invalid_payload"
