from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass
class PulseError(Exception):
    """
    Structured error raised by the pulse counter and its helpers.

    Supported call patterns:

        PulseError("simple message")

        PulseError("message", code="some_code", context={...})

    Attributes:
        code: short machine-readable code string
        message: human-readable message
        context: optional extra fields for debugging / receipts
    """

    code: str
    message: str
    context: Dict[str, Any]

    default_code = "pulse_error"

    def __init__(self, message: Any = "", **kwargs: Any) -> None:
        code = str(kwargs.pop("code", self.default_code))

        ctx = kwargs.pop("context", None)
        if ctx is None:
            context: Dict[str, Any] = {}
        elif isinstance(ctx, Mapping):
            context = dict(ctx)
        else:
            raise TypeError(f"context must be a mapping, got {type(ctx).__name__}")

        if kwargs:
            raise TypeError(f"unexpected keyword arguments: {sorted(kwargs)}")

        if isinstance(message, (bytes, bytearray)):
            message = bytes(message).decode("utf-8", errors="replace")
        message = str(message)

        super().__init__(message)

        object.__setattr__(self, "code", code)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "context", context)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }


class CounterOverflow(PulseError):
    """Increment would carry the value past the configured width."""

    default_code = "counter_overflow"


class Unauthorized(PulseError):
    """Caller lacks the capability required by the operation."""

    default_code = "unauthorized"


class ContextError(PulseError):
    """Validation or coercion failure for a CallContext."""

    default_code = "context_invalid"


__all__ = ["PulseError", "CounterOverflow", "Unauthorized", "ContextError"]
