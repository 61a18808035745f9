"""
Chalkboard Transport - chat channel boundary and adapters
"""

from .base import ChannelMessage, ChatChannel, InboundMessage, StopRequest
from .websocket import MESSAGE_NEW_EVENT, MESSAGE_UPDATED_EVENT, WebSocketChannel

__all__ = [
    "ChannelMessage",
    "ChatChannel",
    "InboundMessage",
    "StopRequest",
    "MESSAGE_NEW_EVENT",
    "MESSAGE_UPDATED_EVENT",
    "WebSocketChannel",
]
