"""
Two-case result type for operations that must not raise past their boundary.

Tool providers return ``Ok(value)`` or ``Err(payload)``; both carry a
JSON-serializable payload that is handed back to the model verbatim.
"""

from dataclasses import dataclass
from typing import Any, Dict, Union


@dataclass(frozen=True)
class Ok:
    """Successful result wrapping a JSON-serializable value."""

    value: Any

    @property
    def ok(self) -> bool:
        return True

    @property
    def payload(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed result wrapping a structured error payload (``{"error": ..., "details": ...}``)."""

    error: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return False

    @property
    def payload(self) -> Dict[str, Any]:
        return self.error


Result = Union[Ok, Err]
