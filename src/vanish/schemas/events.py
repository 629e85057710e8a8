"""Payload schemas for inbound realtime events."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from .common import CamelModel


class SendMessageEvent(CamelModel):
    """``sendMessage``: ciphertext to persist and fan out."""

    session_id: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1)
    encrypted_content: str = Field(..., min_length=1)
    iv: str = Field(..., min_length=1)


class TypingEvent(CamelModel):
    """``typing``: best-effort indicator, never persisted."""

    session_id: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1)
    is_typing: bool


class CallUserEvent(CamelModel):
    """``call-user``: caller's SDP offer addressed to an identity."""

    to: str = Field(..., min_length=1)
    from_: str = Field(..., alias="from", min_length=1)
    offer: Any
    type: Literal["audio", "video"] = "video"
    session_id: str | None = None


class MakeAnswerEvent(CamelModel):
    """``make-answer``: callee's SDP answer."""

    to: str = Field(..., min_length=1)
    answer: Any


class IceCandidateEvent(CamelModel):
    """``ice-candidate``: network path descriptor for either side."""

    to: str = Field(..., min_length=1)
    candidate: Any


class HangupEvent(CamelModel):
    """``hangup``: tear down the call on the other side."""

    to: str = Field(..., min_length=1)
