"""
Indicator states broadcast while a response is being produced.

Indicators are ephemeral: they are sent as out-of-band channel events
attached to the outbound message id and are never persisted.
"""

from enum import Enum
from typing import Any, Dict

from transport.base import ChannelMessage

INDICATOR_UPDATE_EVENT = "ai_indicator.update"
INDICATOR_CLEAR_EVENT = "ai_indicator.clear"
INDICATOR_STOP_EVENT = "ai_indicator.stop"


class Indicator(str, Enum):
    """Phase of a response as shown to the user."""

    THINKING = "AI_STATE_THINKING"
    GENERATING = "AI_STATE_GENERATING"
    EXTERNAL_SOURCES = "AI_STATE_EXTERNAL_SOURCES"
    ERROR = "AI_STATE_ERROR"
    CLEARED = "AI_STATE_CLEARED"

    @property
    def terminal(self) -> bool:
        return self in (Indicator.ERROR, Indicator.CLEARED)


def indicator_event(indicator: Indicator, message: ChannelMessage) -> Dict[str, Any]:
    """Build the channel event for an indicator state.

    ``CLEARED`` is sent as a clear event without a state; every other state
    is an update event carrying ``ai_state``.
    """
    if indicator is Indicator.CLEARED:
        return {"type": INDICATOR_CLEAR_EVENT, "cid": message.cid, "message_id": message.id}
    return {
        "type": INDICATOR_UPDATE_EVENT,
        "ai_state": indicator.value,
        "cid": message.cid,
        "message_id": message.id,
    }
