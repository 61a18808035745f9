"""Streaming contract between the response handler and a model client."""

from typing import AsyncIterator, List, Protocol, runtime_checkable

from .cancellation import CancellationToken
from .stream import StreamChunk, ToolResponse


@runtime_checkable
class ModelSession(Protocol):
    """A live model conversation.

    Implementations append every turn they send or receive to the owning
    ``ChatSession`` and observe the cancellation token: a cancelled stream
    stops yielding and releases its connection.
    """

    def send_message_stream(self, text: str, token: CancellationToken) -> AsyncIterator[StreamChunk]:
        """Submit a user turn and stream the reply as chunk variants."""
        ...

    async def send_tool_responses(self, responses: List[ToolResponse], token: CancellationToken) -> str:
        """Submit tool-response turns and return the follow-up completion text."""
        ...

    def abandon_tool_calls(self) -> int:
        """Answer still-pending tool calls with a cancelled payload, without a model request.

        Keeps the history valid for the next turn after a response is stopped
        between receiving tool calls and submitting their results.
        Returns the number of tool calls closed.
        """
        ...

    async def aclose(self) -> None:
        """Release client resources."""
        ...
