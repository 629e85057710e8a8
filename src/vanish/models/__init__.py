"""SQLAlchemy models for the Vanish service."""

from .chat_session import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_EXPIRED,
    SESSION_STATUS_PENDING,
    SESSION_STATUS_REJECTED,
    ChatSession,
)
from .message import Message
from .user import User

__all__ = [
    "ChatSession",
    "Message",
    "User",
    "SESSION_STATUS_ACTIVE",
    "SESSION_STATUS_EXPIRED",
    "SESSION_STATUS_PENDING",
    "SESSION_STATUS_REJECTED",
]
