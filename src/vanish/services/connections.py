"""Identity-to-channel registry used by every relay for fan-out.

A channel is one live transport connection (a websocket in production). One
identity may hold several channels at once (multi-device) and one channel
may join several identities. The registry is a best-effort presence layer:
events addressed to an identity with no channels are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable
from threading import Lock
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from vanish.services.errors import ChannelClosedError

if TYPE_CHECKING:
    from vanish.services.calls import CallState

logger = logging.getLogger(__name__)


class BaseChannel:
    """A transport connection that can receive ``(event, data)`` frames.

    Sends on one channel are serialized so frames from concurrent relays
    never interleave on the wire. Subclasses implement ``_transmit``.
    """

    def __init__(self, channel_id: str | None = None) -> None:
        self.channel_id = channel_id or uuid4().hex
        # Ephemeral per-connection call negotiation state, keyed by peer identity.
        self.calls: dict[str, CallState] = {}
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, data: Any) -> None:
        """Deliver a single event frame to the remote end."""
        async with self._send_lock:
            await self._transmit({"event": event, "data": data})

    async def _transmit(self, frame: dict[str, Any]) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.channel_id}>"


class ConnectionRegistry:
    """Maps identities to their live channels.

    ``join``/``leave`` are safe to call from any task or thread; the lock is
    never held across an await.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[BaseChannel]] = defaultdict(set)
        self._identities: dict[BaseChannel, set[str]] = defaultdict(set)
        self._lock = Lock()

    def join(self, identity: str, channel: BaseChannel) -> bool:
        """Associate ``channel`` with ``identity``.

        Idempotent. Returns True when the identity had no channel before.
        """
        with self._lock:
            channels = self._channels[identity]
            first = not channels
            channels.add(channel)
            self._identities[channel].add(identity)
        logger.debug("Channel %s joined %s", channel.channel_id, identity)
        return first

    def leave(self, channel: BaseChannel) -> list[str]:
        """Remove ``channel`` everywhere.

        Returns the identities left with no channel at all. Unknown channels
        are ignored.
        """
        offline: list[str] = []
        with self._lock:
            identities = self._identities.pop(channel, set())
            for identity in identities:
                channels = self._channels.get(identity)
                if channels is None:
                    continue
                channels.discard(channel)
                if not channels:
                    del self._channels[identity]
                    offline.append(identity)
        if identities:
            logger.debug("Channel %s left %s", channel.channel_id, sorted(identities))
        return offline

    def resolve(self, identity: str) -> set[BaseChannel]:
        """Return a snapshot of the channels currently joined to ``identity``."""
        with self._lock:
            return set(self._channels.get(identity, ()))

    def identities_of(self, channel: BaseChannel) -> set[str]:
        """Return the identities ``channel`` has joined."""
        with self._lock:
            return set(self._identities.get(channel, ()))

    def is_online(self, identity: str) -> bool:
        with self._lock:
            return bool(self._channels.get(identity))

    def all_channels(self) -> set[BaseChannel]:
        with self._lock:
            return set(self._identities)

    async def emit(
        self,
        identity: str,
        event: str,
        data: Any,
        *,
        exclude: BaseChannel | None = None,
    ) -> int:
        """Send an event to every channel of ``identity``.

        Returns the number of channels the event reached. An identity with no
        channels is a silent drop.
        """
        channels = self.resolve(identity)
        if exclude is not None:
            channels.discard(exclude)
        if not channels:
            logger.debug("Dropped %s for %s: no connected channel", event, identity)
            return 0
        return await self.deliver(channels, event, data)

    async def broadcast(self, event: str, data: Any) -> int:
        """Send an event to every connected channel."""
        return await self.deliver(self.all_channels(), event, data)

    async def deliver(self, channels: Iterable[BaseChannel], event: str, data: Any) -> int:
        delivered = 0
        for channel in channels:
            try:
                await channel.send(event, data)
            except ChannelClosedError:
                logger.info("Channel %s closed during %s; removing", channel.channel_id, event)
                self.leave(channel)
                continue
            delivered += 1
        return delivered
