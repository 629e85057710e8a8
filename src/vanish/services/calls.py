"""Call-signaling relay for offer/answer/ICE/hangup negotiation.

The relay never inspects SDP offers, answers or candidates; it forwards them
to the channels of the addressed identity in the order they arrive on the
sending channel. Unresolvable targets are dropped silently, so callers must
time out on their own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from vanish.core.settings import settings
from vanish.schemas.events import (
    CallUserEvent,
    HangupEvent,
    IceCandidateEvent,
    MakeAnswerEvent,
)
from vanish.services.connections import BaseChannel, ConnectionRegistry

logger = logging.getLogger(__name__)

CALL_STATUS_IDLE = "idle"
CALL_STATUS_OFFERING = "offering"
CALL_STATUS_CONNECTED = "connected"
CALL_STATUS_ENDED = "ended"


@dataclass
class IncomingCall:
    """Offer received by a callee channel that has not been answered yet."""

    from_identity: str
    offer: Any
    call_type: str


@dataclass
class CallState:
    """Negotiation state one channel holds towards one peer. Never persisted."""

    peer: str
    call_type: str
    status: str = CALL_STATUS_IDLE
    is_caller: bool = False
    incoming: IncomingCall | None = None


class CallSignalingRelay:
    """Pass-through for WebRTC negotiation messages, addressed by identity."""

    def __init__(
        self,
        connections: ConnectionRegistry,
        *,
        hangup_on_disconnect: bool | None = None,
    ) -> None:
        self.connections = connections
        self.hangup_on_disconnect = (
            settings.hangup_on_disconnect if hangup_on_disconnect is None else hangup_on_disconnect
        )

    async def call_user(self, channel: BaseChannel, event: CallUserEvent) -> int:
        """Relay ``call-user`` as ``call-made``."""
        channel.calls[event.to] = CallState(
            peer=event.to,
            call_type=event.type,
            status=CALL_STATUS_OFFERING,
            is_caller=True,
        )
        payload = {
            "offer": event.offer,
            "socket": channel.channel_id,
            "from": event.from_,
            "sessionId": event.session_id,
            "type": event.type,
        }
        targets = self._targets(event.to, channel)
        for target in targets:
            target.calls[event.from_] = CallState(
                peer=event.from_,
                call_type=event.type,
                status=CALL_STATUS_OFFERING,
                incoming=IncomingCall(event.from_, event.offer, event.type),
            )
        return await self._relay(targets, event.to, "call-made", payload)

    async def make_answer(self, channel: BaseChannel, event: MakeAnswerEvent) -> int:
        """Relay ``make-answer`` as ``answer-made``."""
        state = channel.calls.get(event.to)
        if state is not None:
            state.status = CALL_STATUS_CONNECTED
            state.incoming = None
        targets = self._targets(event.to, channel)
        self._mark_peers(targets, channel, CALL_STATUS_CONNECTED)
        payload = {"socket": channel.channel_id, "answer": event.answer}
        return await self._relay(targets, event.to, "answer-made", payload)

    async def ice_candidate(self, channel: BaseChannel, event: IceCandidateEvent) -> int:
        """Relay ``ice-candidate`` unchanged."""
        payload = {"socket": channel.channel_id, "candidate": event.candidate}
        return await self._relay(self._targets(event.to, channel), event.to, "ice-candidate", payload)

    async def hangup(self, channel: BaseChannel, event: HangupEvent) -> int:
        """Relay ``hangup`` and clear call state on both ends."""
        channel.calls.pop(event.to, None)
        targets = self._targets(event.to, channel)
        self._mark_peers(targets, channel, None)
        return await self._relay(targets, event.to, "hangup", {"socket": channel.channel_id})

    async def channel_closed(self, channel: BaseChannel, identities: set[str]) -> int:
        """Tear down call state for a disconnecting channel.

        With ``hangup_on_disconnect`` enabled, every peer with an open call
        receives a ``hangup``; otherwise the peer is left to time out.
        Must run before the channel leaves the registry.
        """
        open_calls, channel.calls = channel.calls, {}
        if not open_calls or not self.hangup_on_disconnect:
            return 0

        delivered = 0
        for peer in open_calls:
            targets = self._targets(peer, channel)
            for target in targets:
                for identity in identities:
                    target.calls.pop(identity, None)
            delivered += await self._relay(targets, peer, "hangup", {"socket": channel.channel_id})
        logger.info("Hung up %d call(s) for closed channel %s", len(open_calls), channel.channel_id)
        return delivered

    def _targets(self, identity: str, sender: BaseChannel) -> set[BaseChannel]:
        targets = self.connections.resolve(identity)
        targets.discard(sender)
        return targets

    def _mark_peers(self, targets: set[BaseChannel], sender: BaseChannel, status: str | None) -> None:
        identities = self.connections.identities_of(sender)
        for target in targets:
            for identity in identities:
                if status is None:
                    target.calls.pop(identity, None)
                elif identity in target.calls:
                    target.calls[identity].status = status

    async def _relay(self, targets: set[BaseChannel], identity: str, event: str, payload: Any) -> int:
        if not targets:
            logger.debug("Dropped %s for %s: peer not connected", event, identity)
            return 0
        return await self.connections.deliver(targets, event, payload)
