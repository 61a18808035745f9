"""
Chalkboard Error Handling Module

Provides standardized error codes, exceptions, the provider error
classifier and payload builders for consistent error handling across the
application.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        AgentError,
        ConfigurationError,
        QuotaError,
        ToolError,
        StreamError,
        TransportError,

        # Results
        Ok,
        Err,

        # Classification
        is_quota_error,
        classify_error,
        QUOTA_ERROR_MESSAGE,

        # Payload builders and decorators
        error_response,
        handle_async_tool_errors,
        log_error,
    )

Example:
    from errors import handle_async_tool_errors, ToolError

    @handle_async_tool_errors("web_search")
    async def run_search(provider, query):
        if not query:
            raise ToolError("Search query is required", error_type="invalid_args")
        return await provider.search(query)
"""

from .codes import ErrorCode
from .exceptions import (
    AgentError,
    ConfigurationError,
    QuotaError,
    ToolError,
    StreamError,
    TransportError,
)
from .result import Ok, Err, Result
from .classifier import (
    QUOTA_ERROR_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    QuotaFailure,
    GenericFailure,
    ErrorClassification,
    is_quota_error,
    classify_error,
)
from .response import (
    error_response,
)
from .handlers import (
    handle_async_tool_errors,
    log_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "AgentError",
    "ConfigurationError",
    "QuotaError",
    "ToolError",
    "StreamError",
    "TransportError",
    # Results
    "Ok",
    "Err",
    "Result",
    # Classification
    "QUOTA_ERROR_MESSAGE",
    "GENERIC_ERROR_MESSAGE",
    "QuotaFailure",
    "GenericFailure",
    "ErrorClassification",
    "is_quota_error",
    "classify_error",
    # Payload builders
    "error_response",
    # Decorators
    "handle_async_tool_errors",
    "log_error",
]
