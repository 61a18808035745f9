"""
Standard error payload builders for Chalkboard.

Tool failures are never raised past the tool boundary; they are turned into
structured payloads that go back to the model as a tool-response turn.
"""

from typing import Any, Dict, Optional
from .codes import ErrorCode
from .exceptions import AgentError


def error_response(error: AgentError | Exception, tool: Optional[str] = None) -> Dict[str, Any]:
    """Build a structured error payload for a tool-response turn.

    Args:
        error: The exception to convert
        tool: Optional tool name for context

    Returns:
        Payload dict shaped ``{"error": ..., "details": ..., "code": ..., "tool": ...}``

    Example:
        >>> from errors import ToolError, error_response
        >>> error_response(ToolError("Search query is required", error_type="invalid_args"), tool="web_search")
        {
            "error": "Search query is required",
            "details": None,
            "code": "TOOL_INVALID_ARGS",
            "tool": "web_search",
        }
    """
    if isinstance(error, AgentError):
        return {
            "error": error.message,
            "details": error.details,
            "code": error.code.value,
            "tool": tool,
        }

    # Fallback for non-Chalkboard exceptions
    return {
        "error": str(error) or "failed to call tool",
        "details": None,
        "code": ErrorCode.INTERNAL_UNEXPECTED.value,
        "tool": tool,
    }
