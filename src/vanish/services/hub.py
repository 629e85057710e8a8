"""Process-wide wiring of the realtime chat components."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from vanish.db.session import session_scope
from vanish.db.time import Clock, utcnow
from vanish.services.calls import CallSignalingRelay
from vanish.services.connections import ConnectionRegistry
from vanish.services.locks import SessionLocks
from vanish.services.messages import MessageRelay
from vanish.services.presence import PresenceService
from vanish.services.sessions import SessionRegistry
from vanish.services.sweeper import ExpirySweeper, SessionFactory
from vanish.services.typing_relay import TypingRelay


@dataclass
class ChatHub:
    """Every relay shares one ConnectionRegistry and one SessionLocks arena."""

    connections: ConnectionRegistry
    locks: SessionLocks
    sessions: SessionRegistry
    messages: MessageRelay
    typing: TypingRelay
    calls: CallSignalingRelay
    presence: PresenceService
    sweeper: ExpirySweeper
    session_factory: SessionFactory


def build_hub(
    *,
    clock: Clock = utcnow,
    session_factory: SessionFactory = session_scope,
    ttl: timedelta | None = None,
    sweep_interval: float | None = None,
    notify_on_reject: bool | None = None,
    hangup_on_disconnect: bool | None = None,
) -> ChatHub:
    """Build a fresh set of components. Unset options come from settings."""
    connections = ConnectionRegistry()
    locks = SessionLocks()
    sessions = SessionRegistry(
        connections, clock=clock, ttl=ttl, notify_on_reject=notify_on_reject
    )
    return ChatHub(
        connections=connections,
        locks=locks,
        sessions=sessions,
        messages=MessageRelay(sessions, connections, locks),
        typing=TypingRelay(sessions, connections),
        calls=CallSignalingRelay(connections, hangup_on_disconnect=hangup_on_disconnect),
        presence=PresenceService(connections, clock=clock),
        sweeper=ExpirySweeper(
            sessions,
            connections,
            locks,
            session_factory=session_factory,
            interval=sweep_interval,
        ),
        session_factory=session_factory,
    )


_HUB: ChatHub | None = None


def get_chat_hub() -> ChatHub:
    """Return the shared hub, building it on first use."""
    global _HUB
    if _HUB is None:
        _HUB = build_hub()
    return _HUB
