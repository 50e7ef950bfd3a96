"""
pulse.abi — contract-style entry points over a Counter.

    call(counter, "increment", ctx) -> {"ok": True, "return": 4, "logs": [...], "error": None}
    call(counter, "get_current")    -> {"ok": True, "return": 4, "logs": [], "error": None}

Errors raised by the operation are folded into the envelope
(``ok=False`` plus ``error = PulseError.to_dict()``); state is left as it was.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .context import ANONYMOUS, CallContext
from .counter import Counter
from .errors import PulseError
from .events import Event, events_for_receipt
from .logging import get_logger

log = get_logger(__name__)


def _to_message(msg: Any) -> str:
    if isinstance(msg, (bytes, bytearray)):
        return msg.decode("utf-8", errors="replace")
    return str(msg)


def require(
    condition: bool,
    message: Any = "abi.require failed",
    *,
    code: str = "abi.require_failed",
    context: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Assertion helper:

        abi.require(name in ENTRYPOINTS, b"abi: unknown function")
    """
    if condition:
        return
    raise PulseError(_to_message(message), code=code, context=dict(context or {}))


MANIFEST: Dict[str, Any] = {
    "name": "Pulse",
    "manifestVersion": 1,
    "abi": {
        "functions": [
            {"name": "increment", "inputs": [], "outputs": [{"type": "uint"}], "mutates": True},
            {"name": "get_current", "inputs": [], "outputs": [{"type": "uint"}], "mutates": False},
            {"name": "reset", "inputs": [], "outputs": [{"type": "uint"}], "mutates": True, "restricted": "owner"},
        ],
        "events": [
            {
                "name": "Pulse.Incremented",
                "inputs": [
                    {"name": "previous_value", "type": "uint"},
                    {"name": "new_value", "type": "uint"},
                    {"name": "caller", "type": "bytes"},
                    {"name": "timestamp", "type": "uint"},
                ],
            },
            {
                "name": "Pulse.Reset",
                "inputs": [
                    {"name": "previous_value", "type": "uint"},
                    {"name": "new_value", "type": "uint"},
                    {"name": "reset_by", "type": "bytes"},
                    {"name": "timestamp", "type": "uint"},
                ],
            },
        ],
        "errors": ["counter_overflow", "unauthorized", "abi.unknown_function"],
    },
}

_Handler = Callable[[Counter, CallContext], Tuple[int, Optional[Event]]]

ENTRYPOINTS: Dict[str, _Handler] = {
    "increment": lambda c, ctx: c._increment(ctx),
    "get_current": lambda c, ctx: (c.get_current(), None),
    "reset": lambda c, ctx: c._reset(ctx),
}

ALIASES: Dict[str, str] = {
    "inc": "increment",
    "get": "get_current",
    "get-current": "get_current",
}


def resolve(name: str) -> str:
    canonical = ALIASES.get(name, name)
    require(
        canonical in ENTRYPOINTS,
        f"unknown function: {name}",
        code="abi.unknown_function",
        context={"name": name},
    )
    return canonical


def call(counter: Counter, name: str, ctx: Optional[CallContext] = None) -> Dict[str, Any]:
    """Dispatch one entry point and return a result envelope."""
    ctx = ctx or ANONYMOUS
    try:
        fn = ENTRYPOINTS[resolve(name)]
        value, ev = fn(counter, ctx)
    except PulseError as e:
        log.debug("call failed", extra={"function": name, "code": e.code})
        return {"ok": False, "return": None, "logs": [], "error": e.to_dict()}

    logs: List[Dict[str, Any]] = [c.to_dict() for c in events_for_receipt([ev] if ev else [])]
    return {"ok": True, "return": value, "logs": logs, "error": None}


__all__ = ["require", "MANIFEST", "ENTRYPOINTS", "ALIASES", "resolve", "call"]
