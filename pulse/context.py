"""
pulse.context — per-call metadata handed to counter operations.

A CallContext records *who* invoked an operation and *when*. Neither field
gates increment or read; the caller is only compared against the counter's
owner for the reset capability, and both fields are copied into emitted
events.

Design notes
------------
- Principals are raw bytes. Hex strings (with or without "0x") are accepted
  and normalized; no fixed address length is enforced, only the event
  payload caps (caller <= MAX_BYTES_LEN bytes, timestamp < 2**MAX_INT_BITS),
  so any context that validates can be recorded in an event.
- Empty bytes is the anonymous principal.
- `timestamp` is host-supplied. `CallContext.now()` stamps wall-clock seconds
  for hosts that have no consensus clock.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Union

from .errors import ContextError
from .events import MAX_BYTES_LEN, MAX_INT_BITS

BytesLike = Union[bytes, bytearray, memoryview, str]


# ----------------------------- helpers ----------------------------- #


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_bytes(value: BytesLike) -> bytes:
    """
    Coerce `value` to bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise ContextError(
                f"hex string must have even length, got {len(h)}",
                context={"where": "hex_length"},
            )
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise ContextError(f"invalid hex string: {value!r}", context={"where": "hex_digits"}) from e
    raise ContextError(
        f"cannot convert type {type(value).__name__} to bytes",
        context={"where": "type"},
    )


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def _require_non_negative_int(name: str, v: Any) -> int:
    # bool is an int subclass; a True timestamp is a bug upstream.
    if isinstance(v, bool) or not isinstance(v, int):
        raise ContextError(f"{name} must be int, got {type(v).__name__}", context={"where": name})
    if v < 0:
        raise ContextError(f"{name} must be non-negative, got {v}", context={"where": name})
    return v


# ----------------------------- model ------------------------------ #


@dataclass(frozen=True)
class CallContext:
    """
    Fields
    ------
    caller:     Principal invoking the operation (bytes; b"" = anonymous).
    timestamp:  Host-supplied time of the call (seconds or chain-defined unit).
    """

    caller: bytes = b""
    timestamp: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "caller", to_bytes(self.caller))
        object.__setattr__(self, "timestamp", _require_non_negative_int("timestamp", self.timestamp))
        if len(self.caller) > MAX_BYTES_LEN:
            raise ContextError(
                f"caller longer than {MAX_BYTES_LEN} bytes",
                context={"where": "caller_length", "len": len(self.caller)},
            )
        if self.timestamp.bit_length() > MAX_INT_BITS:
            raise ContextError(
                f"timestamp wider than {MAX_INT_BITS} bits",
                context={"where": "timestamp_bits", "bits": self.timestamp.bit_length()},
            )

    @property
    def anonymous(self) -> bool:
        return not self.caller

    # ---- constructors ---- #

    @classmethod
    def now(cls, caller: BytesLike = b"") -> "CallContext":
        return cls(caller=to_bytes(caller), timestamp=int(time.time()))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CallContext":
        return cls(
            caller=to_bytes(d.get("caller", b"")),
            timestamp=_require_non_negative_int("timestamp", d.get("timestamp", 0)),
        )

    # ---- views ---- #

    def to_dict(self) -> Dict[str, Any]:
        return {"caller": to_hex(self.caller), "timestamp": self.timestamp}


ANONYMOUS = CallContext()


__all__ = [
    "CallContext",
    "ANONYMOUS",
    "to_bytes",
    "to_hex",
]
