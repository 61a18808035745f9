"""
Chalkboard Transport Boundary - what the agent needs from a chat channel

The core never talks to a concrete chat service. It sends and updates
messages and broadcasts indicator events through ``ChatChannel``, and it
receives ``InboundMessage`` / ``StopRequest`` events through the
orchestrator's two entry points.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ChannelMessage:
    """An outbound message as created by the channel.

    Attributes:
        id: Message id, stable for the message's lifetime
        cid: Channel id the message lives in
        text: Text the message was created with
    """

    id: str
    cid: str
    text: str = ""


class InboundMessage(BaseModel):
    """A new message delivered by the channel.

    ``ai_generated`` is set on messages the agent itself wrote so they are
    never answered (feedback-loop guard). ``context_tag`` is an optional
    task description that is prefixed to the user text.
    """

    text: str = ""
    ai_generated: bool = False
    context_tag: Optional[str] = Field(default=None, alias="writingTask")
    user_id: Optional[str] = None

    model_config = {"populate_by_name": True}


class StopRequest(BaseModel):
    """Out-of-band request to stop generating into ``message_id``."""

    message_id: str


@runtime_checkable
class ChatChannel(Protocol):
    """Send/update primitives of one chat channel."""

    @property
    def cid(self) -> str: ...

    async def send_message(self, text: str, ai_generated: bool = True) -> ChannelMessage:
        """Create a new message in the channel."""
        ...

    async def send_event(self, event: Dict[str, Any]) -> None:
        """Broadcast an out-of-band event (fire-and-forget)."""
        ...

    async def update_message(self, message_id: str, text: str, **extra: Any) -> None:
        """Set the full text of a message. Idempotent."""
        ...

    async def disconnect(self) -> None:
        """Release the agent's identity on the channel."""
        ...
