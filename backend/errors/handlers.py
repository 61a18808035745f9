"""
Error handling decorators and utilities for Chalkboard.

Provides decorators for consistent error handling across tool functions.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import AgentError
from .response import error_response
from .result import Err

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def handle_async_tool_errors(tool_name: str, logger: Optional[logging.Logger] = None):
    """Decorator that turns any exception raised by an async tool into ``Err``.

    Wraps a coroutine function to catch all exceptions, log them with stack
    traces, and return ``Err(error_response(...))``. Tools therefore never
    raise past this boundary, so the caller can always produce a
    tool-response turn.

    Args:
        tool_name: Name of the tool for error payload context
        logger: Optional logger instance (defaults to tool-specific logger)

    Returns:
        Decorated async function that returns ``Err`` on exception

    Example:
        >>> @handle_async_tool_errors("web_search")
        ... async def run_search(provider, call):
        ...     if not call.args.get("query"):
        ...         raise ToolError("Search query is required", error_type="invalid_args")
        ...     return await provider.search(call.args["query"])
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"chalkboard.{tool_name}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any):
            try:
                return await func(*args, **kwargs)
            except AgentError as e:
                log.error(f"[{tool_name}] {e.code.value}: {e.message}", exc_info=True)
                return Err(error_response(e, tool=tool_name))
            except Exception as e:
                log.error(f"[{tool_name}] Unexpected error: {e}", exc_info=True)
                return Err(error_response(e, tool=tool_name))

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="ResponseHandler")
        # Logs: "[ResponseHandler] STREAM_FAILED: Model stream ended unexpectedly"
    """
    if isinstance(error, AgentError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)
