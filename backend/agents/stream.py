"""
Model stream chunk variants and tool-call records.

A streamed model response is a sequence of ``TextFragment`` and ``ToolCall``
items terminated by one ``StreamEnd`` carrying the aggregate text.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Union

from errors.result import Ok, Err, Result


@dataclass(frozen=True)
class TextFragment:
    """A piece of response text."""

    text: str


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    id: str = ""


@dataclass(frozen=True)
class StreamEnd:
    """End of stream; ``text`` is the model's aggregate text for the turn."""

    text: str = ""


StreamChunk = Union[TextFragment, ToolCall, StreamEnd]


@dataclass(frozen=True)
class ToolResponse:
    """Outcome of one tool call, ready to be submitted as a tool-response turn."""

    call: ToolCall
    result: Result

    @property
    def payload(self) -> Any:
        return self.result.payload

    def to_content(self) -> str:
        """Serialize the payload verbatim for the tool-response turn."""
        return json.dumps(self.payload, default=str)


__all__ = [
    "TextFragment",
    "ToolCall",
    "StreamEnd",
    "StreamChunk",
    "ToolResponse",
    "Ok",
    "Err",
    "Result",
]
