"""Domain exceptions raised by the chat services."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base exception for control-plane failures surfaced to the caller."""


class InvalidRequestError(ChatError):
    """Raised for self-chat requests, missing fields, or illegal transitions."""


class ConflictError(ChatError):
    """Raised when an open session already exists for the identity pair."""


class SessionNotFoundError(ChatError):
    """Raised when a session id does not resolve to a stored session."""


class UserNotFoundError(ChatError):
    """Raised when a phone number is not registered in the directory."""


class ChannelClosedError(ConnectionError):
    """Raised by a channel whose underlying transport has gone away."""
