"""
WebSocket channel adapter.

Implements ``ChatChannel`` over a FastAPI/Starlette WebSocket. Messages
live client-side; the server only mints ids and pushes frames:

    {"type": "message.new", "cid": ..., "message": {"id", "text", "ai_generated", "user"}}
    {"type": "message.updated", "cid": ..., "message": {"id", "text", ...extra}}
    {"type": "ai_indicator.update" | "ai_indicator.clear", ...}
"""

import asyncio
import logging
import uuid
from typing import Any, Dict

from fastapi import WebSocket

from errors import TransportError

from .base import ChannelMessage

logger = logging.getLogger(__name__)

MESSAGE_NEW_EVENT = "message.new"
MESSAGE_UPDATED_EVENT = "message.updated"


class WebSocketChannel:
    """One client connection acting as a chat channel."""

    def __init__(self, websocket: WebSocket, channel_id: str, user_id: str = "ai-tutor"):
        self.websocket = websocket
        self.channel_id = channel_id
        self.user_id = user_id
        self._send_lock = asyncio.Lock()
        self._closed = False

    @property
    def cid(self) -> str:
        return f"messaging:{self.channel_id}"

    @property
    def closed(self) -> bool:
        return self._closed

    async def _send(self, frame: Dict[str, Any]) -> None:
        if self._closed:
            raise TransportError("Channel is closed", channel_id=self.cid, disconnected=True)
        try:
            async with self._send_lock:
                await self.websocket.send_json(frame)
        except Exception as e:
            raise TransportError("Failed to send frame", details=str(e), channel_id=self.cid) from e

    async def send_message(self, text: str, ai_generated: bool = True) -> ChannelMessage:
        message = ChannelMessage(id=str(uuid.uuid4()), cid=self.cid, text=text)
        await self._send({
            "type": MESSAGE_NEW_EVENT,
            "cid": self.cid,
            "message": {
                "id": message.id,
                "text": text,
                "ai_generated": ai_generated,
                "user": {"id": self.user_id},
            },
        })
        return message

    async def send_event(self, event: Dict[str, Any]) -> None:
        """Broadcast an event. Delivery failures are logged, not raised."""
        try:
            await self._send(event)
        except TransportError as e:
            logger.warning(f"Dropped {event.get('type')} event on {self.cid}: {e}")

    async def update_message(self, message_id: str, text: str, **extra: Any) -> None:
        await self._send({
            "type": MESSAGE_UPDATED_EVENT,
            "cid": self.cid,
            "message": {"id": message_id, "text": text, **extra},
        })

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.websocket.close()
        except Exception as e:
            logger.debug(f"WebSocket close for {self.cid} failed: {e}")
