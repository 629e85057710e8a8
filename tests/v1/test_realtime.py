"""End-to-end tests for the websocket endpoint."""

from fastapi import status

from vanish.models import Message

A = "+15550001"
B = "+15550002"
WS = "/api/v1/ws"


def _join(ws, phone: str) -> dict:
    ws.send_json({"event": "join", "data": phone})
    # Every channel, including the joining one, hears the presence broadcast.
    return ws.receive_json()


def test_join_announces_presence(client, alice, db_session) -> None:
    with client.websocket_connect(WS) as ws:
        frame = _join(ws, A)

    assert frame == {"event": "userStatus", "data": {"phoneNumber": A, "status": "online"}}


def test_conversation_and_call(client, alice, bob, db_session) -> None:
    with client.websocket_connect(WS) as ws_a, client.websocket_connect(WS) as ws_b:
        _join(ws_a, A)
        _join(ws_b, B)
        assert ws_a.receive_json()["data"]["phoneNumber"] == B

        # Control plane over HTTP, notifications over the socket.
        response = client.post(
            "/api/v1/chat/request", json={"from": A, "to": B, "encryptionKey": "k"}
        )
        assert response.status_code == status.HTTP_201_CREATED
        session_id = response.json()["id"]
        request = ws_b.receive_json()
        assert request["event"] == "newRequest"
        assert request["data"]["encryptionKey"] == "k"

        client.post(
            "/api/v1/chat/respond",
            json={"sessionId": session_id, "status": "active", "acceptedBy": B},
        )
        assert ws_a.receive_json()["event"] == "chatStarted"
        assert ws_b.receive_json()["event"] == "chatStarted"

        ws_a.send_json(
            {
                "event": "sendMessage",
                "data": {"sessionId": session_id, "sender": A, "encryptedContent": "ct", "iv": "iv"},
            }
        )
        delivered = ws_b.receive_json()
        assert delivered["event"] == "message"
        assert delivered["data"]["encryptedContent"] == "ct"
        assert ws_a.receive_json()["event"] == "message"

        ws_b.send_json({"event": "typing", "data": {"sessionId": session_id, "sender": B, "isTyping": True}})
        assert ws_a.receive_json() == {
            "event": "typing",
            "data": {"sessionId": session_id, "sender": B, "isTyping": True},
        }

        offer = {"type": "offer", "sdp": "v=0"}
        ws_a.send_json(
            {"event": "call-user", "data": {"to": B, "from": A, "offer": offer, "sessionId": session_id}}
        )
        made = ws_b.receive_json()
        assert made["event"] == "call-made"
        assert made["data"]["offer"] == offer
        assert made["data"]["type"] == "video"
        assert made["data"]["sessionId"] == session_id

        ws_b.send_json({"event": "make-answer", "data": {"to": A, "answer": {"type": "answer"}}})
        answer = ws_a.receive_json()
        assert answer["event"] == "answer-made"
        assert answer["data"]["answer"] == {"type": "answer"}
        assert answer["data"]["socket"] != made["data"]["socket"]

        ws_a.send_json({"event": "ice-candidate", "data": {"to": B, "candidate": {"candidate": "c1"}}})
        assert ws_b.receive_json()["data"]["candidate"] == {"candidate": "c1"}

        ws_b.send_json({"event": "hangup", "data": {"to": A}})
        assert ws_a.receive_json()["event"] == "hangup"

    assert db_session.query(Message).filter(Message.session_id == session_id).count() == 1


def test_malformed_frames_keep_the_socket_open(client, alice) -> None:
    with client.websocket_connect(WS) as ws:
        ws.send_bytes(b"\x00\x01")
        ws.send_text("not json")
        ws.send_json(["not", "an", "object"])
        ws.send_json({"event": "sendMessage", "data": {"sessionId": "x"}})
        assert _join(ws, A)["event"] == "userStatus"
