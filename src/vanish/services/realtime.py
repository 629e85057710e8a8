"""Dispatch inbound realtime events to the relays.

Every relay event is fire-and-forget: malformed payloads, unknown events and
store failures are logged and dropped, and nothing is sent back to the
originating channel.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from vanish.schemas.events import (
    CallUserEvent,
    HangupEvent,
    IceCandidateEvent,
    MakeAnswerEvent,
    SendMessageEvent,
    TypingEvent,
)
from vanish.services.connections import BaseChannel
from vanish.services.hub import ChatHub

logger = logging.getLogger(__name__)

Handler = Callable[[BaseChannel, Any], Awaitable[None]]


class RealtimeEventHandler:
    """Route ``{"event", "data"}`` frames from one channel."""

    def __init__(self, hub: ChatHub) -> None:
        self.hub = hub
        self._handlers: dict[str, Handler] = {
            "join": self._join,
            "sendMessage": self._send_message,
            "typing": self._typing,
            "call-user": self._call_user,
            "make-answer": self._make_answer,
            "ice-candidate": self._ice_candidate,
            "hangup": self._hangup,
        }

    async def handle(self, channel: BaseChannel, frame: Mapping[str, Any]) -> None:
        """Process a single inbound frame."""
        event = frame.get("event")
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            logger.debug("Dropped unsupported event %r from %s", event, channel.channel_id)
            return
        try:
            await handler(channel, frame.get("data"))
        except ValidationError as exc:
            logger.info("Dropped malformed %s from %s: %s", event, channel.channel_id, exc)
        except SQLAlchemyError as exc:
            logger.error("Store error handling %s: %s", event, exc, exc_info=True)

    async def disconnect(self, channel: BaseChannel) -> None:
        """Clean up after a channel has closed."""
        identities = self.hub.connections.identities_of(channel)
        await self.hub.calls.channel_closed(channel, identities)
        try:
            with self.hub.session_factory() as db:
                await self.hub.presence.leave(db, channel)
        except SQLAlchemyError as exc:
            self.hub.connections.leave(channel)
            logger.error("Store error on disconnect of %s: %s", channel.channel_id, exc)

    async def _join(self, channel: BaseChannel, data: Any) -> None:
        identity = data if isinstance(data, str) else None
        if isinstance(data, Mapping):
            identity = data.get("phoneNumber")
        if not isinstance(identity, str) or not identity.strip():
            logger.info("Dropped join without identity from %s", channel.channel_id)
            return
        with self.hub.session_factory() as db:
            await self.hub.presence.join(db, identity.strip(), channel)

    async def _send_message(self, channel: BaseChannel, data: Any) -> None:
        event = SendMessageEvent.model_validate(data)
        with self.hub.session_factory() as db:
            await self.hub.messages.send(
                db, event.session_id, event.sender, event.encrypted_content, event.iv
            )

    async def _typing(self, channel: BaseChannel, data: Any) -> None:
        event = TypingEvent.model_validate(data)
        with self.hub.session_factory() as db:
            await self.hub.typing.notify_typing(db, event.session_id, event.sender, event.is_typing)

    async def _call_user(self, channel: BaseChannel, data: Any) -> None:
        await self.hub.calls.call_user(channel, CallUserEvent.model_validate(data))

    async def _make_answer(self, channel: BaseChannel, data: Any) -> None:
        await self.hub.calls.make_answer(channel, MakeAnswerEvent.model_validate(data))

    async def _ice_candidate(self, channel: BaseChannel, data: Any) -> None:
        await self.hub.calls.ice_candidate(channel, IceCandidateEvent.model_validate(data))

    async def _hangup(self, channel: BaseChannel, data: Any) -> None:
        await self.hub.calls.hangup(channel, HangupEvent.model_validate(data))
