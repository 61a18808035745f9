"""
Chalkboard tutoring agent core.

Usage:
    from agents import SessionOrchestrator

    agent = SessionOrchestrator(channel)
    await agent.initialize()
    await agent.handle_message(InboundMessage(text="What is 2+2?"))
"""

from .cancellation import CancellationToken
from .indicators import (
    INDICATOR_CLEAR_EVENT,
    INDICATOR_STOP_EVENT,
    INDICATOR_UPDATE_EVENT,
    Indicator,
    indicator_event,
)
from .model import ModelSession
from .orchestrator import SessionOrchestrator
from .prompts import annotate_with_context, build_system_prompt
from .response_handler import ResponseHandler, StreamState
from .session import ChatSession
from .stream import StreamChunk, StreamEnd, TextFragment, ToolCall, ToolResponse
from .tools import TOOL_DECLARATIONS, WEB_SEARCH, ToolProvider, execute_tool_call

__all__ = [
    "CancellationToken",
    "INDICATOR_CLEAR_EVENT",
    "INDICATOR_STOP_EVENT",
    "INDICATOR_UPDATE_EVENT",
    "Indicator",
    "indicator_event",
    "ModelSession",
    "SessionOrchestrator",
    "annotate_with_context",
    "build_system_prompt",
    "ResponseHandler",
    "StreamState",
    "ChatSession",
    "StreamChunk",
    "StreamEnd",
    "TextFragment",
    "ToolCall",
    "ToolResponse",
    "TOOL_DECLARATIONS",
    "WEB_SEARCH",
    "ToolProvider",
    "execute_tool_call",
]
