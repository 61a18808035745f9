"""
Chalkboard Tools - declarations and dispatch for model tool calls

Only one tool is declared today: ``web_search``. The provider behind it is
abstract (``ToolProvider``) and must never raise; anything that does slip
through is converted to an error payload by ``handle_async_tool_errors``.
"""

import logging
from typing import Any, Dict, List, Protocol, runtime_checkable

from errors import ToolError, error_response, handle_async_tool_errors
from errors.result import Err, Result
from logging_config import log_tool

from .stream import ToolCall, ToolResponse

logger = logging.getLogger(__name__)

WEB_SEARCH = "web_search"

WEB_SEARCH_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": WEB_SEARCH,
        "description": "Search the web for current information, news, facts, or research on any topic",
        "parameters": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to find information about",
                },
            },
            "required": ["query"],
        },
    },
}

TOOL_DECLARATIONS: List[Dict[str, Any]] = [WEB_SEARCH_TOOL]


@runtime_checkable
class ToolProvider(Protocol):
    """Search capability consumed by the response handler.

    ``search`` returns ``Ok(result)`` or ``Err({"error": ..., "details": ...})``
    and never raises. A missing credential is an ``Err``, not an exception.
    """

    async def search(self, query: str) -> Result: ...


def is_known_tool(name: str) -> bool:
    return name == WEB_SEARCH


@handle_async_tool_errors(WEB_SEARCH, logger=logger)
async def _run_web_search(provider: ToolProvider, call: ToolCall) -> Result:
    query = call.args.get("query") if isinstance(call.args, dict) else None
    if not isinstance(query, str) or not query.strip():
        raise ToolError("Search query is required", tool=WEB_SEARCH, error_type="invalid_args")
    return await provider.search(query.strip())


async def execute_tool_call(provider: ToolProvider, call: ToolCall) -> ToolResponse:
    """Run one tool call and wrap its outcome for the conversation.

    Unknown tools get an error payload instead of a provider call, so every
    tool call the model made is still answered.

    Args:
        provider: Tool provider bound to the handler
        call: Tool call surfaced by the model

    Returns:
        ToolResponse carrying either the provider's result or an error payload
    """
    if not is_known_tool(call.name):
        logger.warning(f"Model requested unknown tool: {call.name}")
        error = ToolError(f"Unknown tool: {call.name}", tool=call.name, error_type="invalid_args")
        return ToolResponse(call=call, result=Err(error_response(error, tool=call.name)))

    query = call.args.get("query", "") if isinstance(call.args, dict) else ""
    log_tool(logger, call.name, "start", query=repr(query))
    result = await _run_web_search(provider, call)
    log_tool(logger, call.name, "end", ok=result.ok)
    return ToolResponse(call=call, result=result)
