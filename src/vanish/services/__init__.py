"""Business logic services for the Vanish service."""

from .calls import CallSignalingRelay, CallState
from .connections import BaseChannel, ConnectionRegistry
from .errors import (
    ChannelClosedError,
    ChatError,
    ConflictError,
    InvalidRequestError,
    SessionNotFoundError,
    UserNotFoundError,
)
from .locks import SessionLocks
from .messages import MessageRelay
from .presence import PresenceService
from .sessions import SessionRegistry
from .sweeper import ExpirySweeper
from .typing_relay import TypingRelay

__all__ = [
    "BaseChannel",
    "CallSignalingRelay",
    "CallState",
    "ChannelClosedError",
    "ChatError",
    "ConflictError",
    "ConnectionRegistry",
    "ExpirySweeper",
    "InvalidRequestError",
    "MessageRelay",
    "PresenceService",
    "SessionLocks",
    "SessionNotFoundError",
    "SessionRegistry",
    "TypingRelay",
    "UserNotFoundError",
]
