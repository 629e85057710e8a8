"""
Pydantic schemas for API request/response models and realtime event payloads.

JSON field names are camelCase on the wire; Python attributes stay snake_case.
"""

from .chat import (
    ChatRequestCreate,
    ChatRespond,
    ChatSessionResponse,
    MessageResponse,
    RejectedResponse,
)
from .events import (
    CallUserEvent,
    HangupEvent,
    IceCandidateEvent,
    MakeAnswerEvent,
    SendMessageEvent,
    TypingEvent,
)
from .user import LoginRequest, RegisterRequest, UserResponse

__all__ = [
    "ChatRequestCreate", "ChatRespond", "ChatSessionResponse", "MessageResponse",
    "RejectedResponse",
    "CallUserEvent", "HangupEvent", "IceCandidateEvent", "MakeAnswerEvent",
    "SendMessageEvent", "TypingEvent",
    "LoginRequest", "RegisterRequest", "UserResponse",
]
