"""Tests for the call-signaling relay."""

import pytest

from tests.conftest import RecordingChannel
from vanish.schemas.events import (
    CallUserEvent,
    HangupEvent,
    IceCandidateEvent,
    MakeAnswerEvent,
)
from vanish.services.calls import (
    CALL_STATUS_CONNECTED,
    CALL_STATUS_OFFERING,
    CallSignalingRelay,
)

A = "+15550001"
B = "+15550002"

OFFER = {"type": "offer", "sdp": "v=0\r\no=- 4611731400430051336 2 IN IP4 127.0.0.1\r\n"}
ANSWER = {"type": "answer", "sdp": "v=0\r\no=- 1 2 IN IP4 127.0.0.1\r\n"}


@pytest.fixture()
def peers(hub):
    caller, callee = RecordingChannel("caller"), RecordingChannel("callee")
    hub.connections.join(A, caller)
    hub.connections.join(B, callee)
    return caller, callee


def _call(to=B, frm=A, kind="video") -> CallUserEvent:
    return CallUserEvent.model_validate({"to": to, "from": frm, "offer": OFFER, "type": kind})


@pytest.mark.asyncio
async def test_round_trip(hub, peers) -> None:
    caller, callee = peers
    relay = hub.calls

    assert await relay.call_user(caller, _call()) == 1
    [made] = callee.events("call-made")
    assert made["offer"] == OFFER
    assert made["from"] == A
    assert made["type"] == "video"
    assert made["socket"] == "caller"
    assert caller.frames == []

    await relay.make_answer(callee, MakeAnswerEvent(to=A, answer=ANSWER))
    assert caller.events("answer-made") == [{"socket": "callee", "answer": ANSWER}]

    for n in range(3):
        await relay.ice_candidate(caller, IceCandidateEvent(to=B, candidate={"candidate": f"a{n}"}))
        await relay.ice_candidate(callee, IceCandidateEvent(to=A, candidate={"candidate": f"b{n}"}))
    assert [c["candidate"]["candidate"] for c in callee.events("ice-candidate")] == ["a0", "a1", "a2"]
    assert [c["candidate"]["candidate"] for c in caller.events("ice-candidate")] == ["b0", "b1", "b2"]

    await relay.hangup(callee, HangupEvent(to=A))
    assert caller.events("hangup") == [{"socket": "callee"}]
    assert callee.events("hangup") == []


@pytest.mark.asyncio
async def test_offer_precedes_candidates(hub, peers) -> None:
    caller, callee = peers
    await hub.calls.call_user(caller, _call())
    await hub.calls.ice_candidate(caller, IceCandidateEvent(to=B, candidate="c1"))

    assert callee.names() == ["call-made", "ice-candidate"]


@pytest.mark.asyncio
async def test_unreachable_target_is_dropped(hub, peers) -> None:
    caller, _ = peers
    assert await hub.calls.call_user(caller, _call(to="+19990000")) == 0
    assert caller.frames == []


@pytest.mark.asyncio
async def test_call_state_tracks_negotiation(hub, peers) -> None:
    caller, callee = peers

    await hub.calls.call_user(caller, _call(kind="audio"))
    assert caller.calls[B].status == CALL_STATUS_OFFERING
    assert caller.calls[B].is_caller
    incoming = callee.calls[A].incoming
    assert incoming is not None
    assert incoming.offer == OFFER
    assert incoming.call_type == "audio"

    await hub.calls.make_answer(callee, MakeAnswerEvent(to=A, answer=ANSWER))
    assert callee.calls[A].status == CALL_STATUS_CONNECTED
    assert callee.calls[A].incoming is None
    assert caller.calls[B].status == CALL_STATUS_CONNECTED

    await hub.calls.hangup(caller, HangupEvent(to=B))
    assert caller.calls == {}
    assert callee.calls == {}


@pytest.mark.asyncio
async def test_relay_fans_out_to_callee_devices_only(hub, peers) -> None:
    caller, callee = peers
    tablet = RecordingChannel("tablet")
    other_caller_device = RecordingChannel("caller-2")
    hub.connections.join(B, tablet)
    hub.connections.join(A, other_caller_device)

    assert await hub.calls.call_user(caller, _call()) == 2
    assert len(tablet.events("call-made")) == 1
    assert other_caller_device.frames == []


@pytest.mark.asyncio
async def test_disconnect_leaves_peer_waiting_by_default(hub, peers) -> None:
    caller, callee = peers
    await hub.calls.call_user(caller, _call())

    assert await hub.calls.channel_closed(caller, {A}) == 0
    assert caller.calls == {}
    assert callee.events("hangup") == []


@pytest.mark.asyncio
async def test_disconnect_hangs_up_when_enabled(hub, peers) -> None:
    caller, callee = peers
    relay = CallSignalingRelay(hub.connections, hangup_on_disconnect=True)
    await relay.call_user(caller, _call())

    assert await relay.channel_closed(caller, {A}) == 1
    assert callee.events("hangup") == [{"socket": "caller"}]
    assert callee.calls == {}


def test_call_type_is_validated() -> None:
    with pytest.raises(ValueError):
        CallUserEvent.model_validate({"to": B, "from": A, "offer": OFFER, "type": "fax"})
