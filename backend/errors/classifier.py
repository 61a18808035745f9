"""
Provider error classification.

Decides whether an arbitrary failure is a quota / rate-limit / billing
condition and produces the user-facing text for it. Quota failures never
surface raw provider text to the user.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

QUOTA_ERROR_MESSAGE = (
    "⚠️ Gemini API quota exceeded. Please check your Google Cloud billing and quota limits. "
    "Visit https://console.cloud.google.com/apis/api/generativelanguage.googleapis.com/quotas "
    "to manage your quotas."
)

GENERIC_ERROR_MESSAGE = "Error generating the message"

# Checked in order, case-insensitive, against the failure's text
_QUOTA_PATTERNS = (
    "quota",
    "billing",
    "exceeded",
    "rate_limit",
    "resource_exhausted",
    "429",
    "check your plan",
)

_QUOTA_STATUS_CODES = (429,)
_QUOTA_ERROR_CODES = ("RESOURCE_EXHAUSTED", "RATE_LIMIT_EXCEEDED")


@dataclass(frozen=True)
class QuotaFailure:
    """Failure classified as a provider quota/billing condition."""

    user_message: str
    raw: str

    @property
    def is_quota(self) -> bool:
        return True


@dataclass(frozen=True)
class GenericFailure:
    """Any other failure; the user sees the failure's own message."""

    user_message: str
    raw: str

    @property
    def is_quota(self) -> bool:
        return False


ErrorClassification = Union[QuotaFailure, GenericFailure]


def _error_text(error: Any) -> str:
    return str(error)


def _field(error: Any, name: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def _has_quota_fields(error: Any) -> bool:
    for name in ("status", "status_code"):
        if _field(error, name) in _QUOTA_STATUS_CODES:
            return True
    for name in ("code", "status"):
        if _field(error, name) in _QUOTA_ERROR_CODES:
            return True
    return False


def is_quota_error(error: Any) -> bool:
    """Check whether a failure represents a quota, rate-limit or billing condition.

    Inspects the failure's text for known markers first, then structured
    status/error codes (HTTP 429, ``RESOURCE_EXHAUSTED``, ``RATE_LIMIT_EXCEEDED``).
    SDK errors that carry a parsed response body (``error.body``) are checked
    the same way.
    """
    if error is None or error == "":
        return False

    lowered = _error_text(error).lower()
    if any(pattern in lowered for pattern in _QUOTA_PATTERNS):
        return True

    if _has_quota_fields(error):
        return True

    body = _field(error, "body")
    if isinstance(body, Mapping):
        nested = body.get("error", body)
        if isinstance(nested, Mapping) and _has_quota_fields(nested):
            return True

    return False


def classify_error(error: Any) -> ErrorClassification:
    """Classify a failure and pick the text to show the user."""
    raw = _error_text(error) if error is not None else ""
    if is_quota_error(error):
        return QuotaFailure(user_message=QUOTA_ERROR_MESSAGE, raw=raw)
    return GenericFailure(user_message=raw or GENERIC_ERROR_MESSAGE, raw=raw)
