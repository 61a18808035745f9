"""
Custom exception hierarchy for Chalkboard.

All exceptions inherit from AgentError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class AgentError(Exception):
    """Base exception for all Chalkboard errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(AgentError):
    """A required credential or setting is missing. Fatal at initialization."""

    code = ErrorCode.CONFIG_MISSING_CREDENTIAL
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        setting: Optional[str] = None,
        invalid: bool = False,
        **context: Any,
    ):
        code = ErrorCode.CONFIG_INVALID_VALUE if invalid else ErrorCode.CONFIG_MISSING_CREDENTIAL
        ctx = {**context}
        if setting:
            ctx["setting"] = setting
        super().__init__(message, details, code=code, **ctx)


class QuotaError(AgentError):
    """Provider rejected the call for quota, rate-limit or billing reasons.

    The message is always a fixed, user-safe explanation. The raw provider
    text is kept in ``details`` for logs only.
    """

    code = ErrorCode.LLM_QUOTA_EXCEEDED
    recoverable = False

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[str] = None,
        provider: Optional[str] = None,
        **context: Any,
    ):
        if message is None:
            from .classifier import QUOTA_ERROR_MESSAGE

            message = QUOTA_ERROR_MESSAGE
        ctx = {**context}
        if provider:
            ctx["provider"] = provider
        super().__init__(message, details, **ctx)

    def __str__(self) -> str:
        return self.message


class ToolError(AgentError):
    """A tool provider call failed or was misconfigured. Never aborts a response."""

    code = ErrorCode.TOOL_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        tool: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "not_configured":
            code = ErrorCode.TOOL_NOT_CONFIGURED
        elif error_type == "invalid_args":
            code = ErrorCode.TOOL_INVALID_ARGS
        elif error_type == "cancelled":
            code = ErrorCode.TOOL_CANCELLED
        else:
            code = ErrorCode.TOOL_FAILED

        ctx = {**context}
        if tool:
            ctx["tool"] = tool
        super().__init__(message, details, code=code, **ctx)


class StreamError(AgentError):
    """Failure while streaming from the model or committing text."""

    code = ErrorCode.STREAM_FAILED
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        model: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "timeout":
            code = ErrorCode.LLM_TIMEOUT
        elif error_type == "unavailable":
            code = ErrorCode.LLM_UNAVAILABLE
        elif error_type == "invalid":
            code = ErrorCode.LLM_RESPONSE_INVALID
        elif error_type == "interrupted":
            code = ErrorCode.STREAM_INTERRUPTED
        else:
            code = ErrorCode.STREAM_FAILED

        ctx = {**context}
        if model:
            ctx["model"] = model
        super().__init__(message, details, code=code, **ctx)


class TransportError(AgentError):
    """The chat channel could not deliver a frame."""

    code = ErrorCode.TRANSPORT_SEND_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        channel_id: Optional[str] = None,
        disconnected: bool = False,
        **context: Any,
    ):
        code = ErrorCode.TRANSPORT_DISCONNECTED if disconnected else ErrorCode.TRANSPORT_SEND_FAILED
        ctx = {**context}
        if channel_id:
            ctx["channel_id"] = channel_id
        super().__init__(message, details, code=code, **ctx)
