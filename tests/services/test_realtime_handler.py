"""Tests for realtime frame dispatch."""

import pytest

from tests.conftest import RecordingChannel, make_session
from vanish.models import Message, User
from vanish.services.realtime import RealtimeEventHandler

A = "+15550001"
B = "+15550002"


@pytest.fixture()
def handler(hub) -> RealtimeEventHandler:
    return RealtimeEventHandler(hub)


@pytest.mark.asyncio
async def test_join_registers_and_announces(hub, handler, db_session, alice) -> None:
    channel = RecordingChannel()

    await handler.handle(channel, {"event": "join", "data": A})

    assert hub.connections.resolve(A) == {channel}
    assert channel.events("userStatus") == [{"phoneNumber": A, "status": "online"}]
    assert db_session.get(User, A).status == "online"


@pytest.mark.asyncio
async def test_join_accepts_object_payload(hub, handler) -> None:
    channel = RecordingChannel()
    await handler.handle(channel, {"event": "join", "data": {"phoneNumber": B}})
    assert hub.connections.resolve(B) == {channel}


@pytest.mark.asyncio
async def test_disconnect_marks_offline_after_last_device(hub, handler, db_session, alice, clock) -> None:
    phone, laptop, watcher = RecordingChannel(), RecordingChannel(), RecordingChannel()
    await handler.handle(phone, {"event": "join", "data": A})
    await handler.handle(laptop, {"event": "join", "data": A})
    await handler.handle(watcher, {"event": "join", "data": B})
    clock.advance(30)

    await handler.disconnect(phone)
    assert db_session.get(User, A).status == "online"

    await handler.disconnect(laptop)
    user = db_session.get(User, A)
    assert user.status == "offline"
    assert user.last_seen == clock.now
    assert watcher.events("userStatus")[-1] == {"phoneNumber": A, "status": "offline"}
    assert hub.connections.resolve(A) == set()


@pytest.mark.asyncio
async def test_send_message_event(hub, handler, db_session, clock) -> None:
    session = make_session(db_session, clock, A, B)
    sender, receiver = RecordingChannel(), RecordingChannel()
    hub.connections.join(A, sender)
    hub.connections.join(B, receiver)

    await handler.handle(
        sender,
        {
            "event": "sendMessage",
            "data": {"sessionId": session.id, "sender": A, "encryptedContent": "ct", "iv": "iv"},
        },
    )

    assert db_session.query(Message).count() == 1
    assert receiver.events("message")[0]["encryptedContent"] == "ct"


@pytest.mark.asyncio
async def test_typing_event(hub, handler, db_session, clock) -> None:
    session = make_session(db_session, clock, A, B)
    sender, receiver = RecordingChannel(), RecordingChannel()
    hub.connections.join(A, sender)
    hub.connections.join(B, receiver)

    await handler.handle(
        sender, {"event": "typing", "data": {"sessionId": session.id, "sender": A, "isTyping": True}}
    )

    assert receiver.events("typing") == [{"sessionId": session.id, "sender": A, "isTyping": True}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "frame",
    [
        {"event": "sendMessage", "data": {"sessionId": "s1"}},
        {"event": "sendMessage"},
        {"event": "typing", "data": "yes"},
        {"event": "call-user", "data": {"to": B}},
        {"event": "nope", "data": {}},
        {"data": {}},
        {"event": "join", "data": ""},
    ],
)
async def test_malformed_frames_are_dropped_silently(hub, handler, db_session, frame) -> None:
    channel = RecordingChannel()
    hub.connections.join(A, channel)

    await handler.handle(channel, frame)

    assert channel.frames == []
    assert db_session.query(Message).count() == 0


@pytest.mark.asyncio
async def test_call_events_dispatch(hub, handler) -> None:
    caller, callee = RecordingChannel(), RecordingChannel()
    hub.connections.join(A, caller)
    hub.connections.join(B, callee)

    await handler.handle(
        caller,
        {"event": "call-user", "data": {"to": B, "from": A, "offer": {"sdp": "x"}, "type": "audio"}},
    )
    await handler.handle(callee, {"event": "make-answer", "data": {"to": A, "answer": {"sdp": "y"}}})
    await handler.handle(caller, {"event": "ice-candidate", "data": {"to": B, "candidate": "c"}})
    await handler.handle(caller, {"event": "hangup", "data": {"to": B}})

    assert callee.names() == ["call-made", "ice-candidate", "hangup"]
    assert caller.names() == ["answer-made"]
