"""
Error codes for Chalkboard.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for Chalkboard.

    Categories:
    - CONFIG_*: Missing or invalid configuration
    - LLM_*: Language model errors
    - TOOL_*: Tool provider errors (folded back into the conversation)
    - STREAM_*: Failures while streaming or committing a response
    - TRANSPORT_*: Chat channel errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Configuration errors (fatal at startup)
    CONFIG_MISSING_CREDENTIAL = "CONFIG_MISSING_CREDENTIAL"
    CONFIG_INVALID_VALUE = "CONFIG_INVALID_VALUE"

    # LLM errors (model interactions)
    LLM_QUOTA_EXCEEDED = "LLM_QUOTA_EXCEEDED"
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RESPONSE_INVALID = "LLM_RESPONSE_INVALID"

    # Tool errors (non-fatal)
    TOOL_FAILED = "TOOL_FAILED"
    TOOL_NOT_CONFIGURED = "TOOL_NOT_CONFIGURED"
    TOOL_INVALID_ARGS = "TOOL_INVALID_ARGS"
    TOOL_CANCELLED = "TOOL_CANCELLED"

    # Streaming errors
    STREAM_FAILED = "STREAM_FAILED"
    STREAM_INTERRUPTED = "STREAM_INTERRUPTED"

    # Transport errors
    TRANSPORT_SEND_FAILED = "TRANSPORT_SEND_FAILED"
    TRANSPORT_DISCONNECTED = "TRANSPORT_DISCONNECTED"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_STATE_ERROR = "INTERNAL_STATE_ERROR"
