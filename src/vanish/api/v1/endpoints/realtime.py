"""WebSocket endpoint carrying chat relay and call-signaling events."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vanish.services.connections import BaseChannel
from vanish.services.errors import ChannelClosedError
from vanish.services.realtime import RealtimeEventHandler

from ..dependencies import HubDep

router = APIRouter(tags=["realtime"])

logger = logging.getLogger(__name__)


class WebSocketChannel(BaseChannel):
    """Channel backed by a FastAPI websocket, sending JSON text frames."""

    def __init__(self, websocket: WebSocket) -> None:
        super().__init__()
        self.websocket = websocket

    async def _transmit(self, frame: dict[str, Any]) -> None:
        try:
            await self.websocket.send_text(json.dumps(frame))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            raise ChannelClosedError(str(exc)) from exc


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, hub: HubDep) -> None:
    """Handle one client connection until it disconnects."""
    await websocket.accept()
    channel = WebSocketChannel(websocket)
    handler = RealtimeEventHandler(hub)
    logger.debug("Channel %s connected", channel.channel_id)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.info("Dropped binary frame from %s", channel.channel_id)
                continue
            try:
                frame = json.loads(raw)
            except ValueError:
                logger.info("Dropped non-JSON frame from %s", channel.channel_id)
                continue
            if not isinstance(frame, dict):
                logger.info("Dropped non-object frame from %s", channel.channel_id)
                continue
            await handler.handle(channel, frame)
    finally:
        await handler.disconnect(channel)
        logger.debug("Channel %s disconnected", channel.channel_id)
