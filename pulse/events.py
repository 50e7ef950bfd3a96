from __future__ import annotations

import re
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import PulseError

# Basic bounds; the counter's own payloads sit well inside them.
MAX_EVENT_NAME_BYTES = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

INCREMENTED = b"Pulse.Incremented"
RESET = b"Pulse.Reset"

# Keys must be identifier-like: letters/underscore, then letters/digits/underscore.
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArgValue = Any  # constrained at runtime


@dataclass(frozen=True)
class Event:
    """In-memory representation of an emitted notification."""

    name: bytes
    args: Dict[str, ArgValue]


@dataclass(frozen=True)
class CanonicalEvent:
    """
    Canonical event representation for receipts:

        name: "0x" + hex-encoded event name bytes
        args: sequence of {"k", "t", "v"} dicts
              t="b" => bytes encoded as 0x-prefixed hex
              t="i" => integer
              t="z" => boolean
    """

    name: str
    args: Sequence[Mapping[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": [dict(a) for a in self.args]}


# --- Validation helpers -----------------------------------------------------


def _check_name(name: Any) -> bytes:
    if not isinstance(name, (bytes, bytearray)):
        raise PulseError("event name must be bytes", code="event_invalid", context={"where": "name_type"})
    b = bytes(name)
    if not b:
        raise PulseError("event name must be non-empty", code="event_invalid", context={"where": "name_empty"})
    if len(b) > MAX_EVENT_NAME_BYTES:
        raise PulseError(
            "event name too long",
            code="event_invalid",
            context={"where": "name_length", "len": len(b)},
        )
    return b


def _check_key(key: Any) -> str:
    if not isinstance(key, str):
        raise PulseError("event key must be str", code="event_invalid", context={"where": "key_type"})
    if not key or len(key) > MAX_KEY_LEN:
        raise PulseError(
            "event key length out of range",
            code="event_invalid",
            context={"where": "key_length", "len": len(key)},
        )
    if not _KEY_RE.match(key):
        raise PulseError(
            "event key has invalid characters",
            code="event_invalid",
            context={"where": "key_grammar", "key": key},
        )
    return key


def _check_value(value: Any) -> ArgValue:
    if isinstance(value, (bytes, bytearray)):
        b = bytes(value)
        if len(b) > MAX_BYTES_LEN:
            raise PulseError(
                "event bytes arg too long",
                code="event_invalid",
                context={"where": "value_bytes_length", "len": len(b)},
            )
        return b

    # bool is a subclass of int, so check it before int.
    if isinstance(value, bool):
        return value

    if isinstance(value, int):
        if value.bit_length() > MAX_INT_BITS:
            raise PulseError(
                "event int arg out of range",
                code="event_invalid",
                context={"where": "value_int_bits", "bits": value.bit_length()},
            )
        return int(value)

    raise PulseError(
        "unsupported event arg type",
        code="event_invalid",
        context={"where": "value_type", "py_type": type(value).__name__},
    )


def make_event(name: bytes, args: Mapping[Any, Any]) -> Event:
    """Validate and build an Event; bytes keys are decoded as ASCII."""
    bname = _check_name(name)
    if not isinstance(args, Mapping):
        raise PulseError("event args must be a mapping", code="event_invalid", context={"where": "args_type"})

    checked: Dict[str, ArgValue] = {}
    for raw_k, raw_v in args.items():
        if isinstance(raw_k, (bytes, bytearray)):
            raw_k = bytes(raw_k).decode("ascii", errors="replace")
        checked[_check_key(raw_k)] = _check_value(raw_v)
    return Event(bname, checked)


def incremented(previous_value: int, new_value: int, caller: bytes, timestamp: int) -> Event:
    return make_event(
        INCREMENTED,
        {
            "previous_value": previous_value,
            "new_value": new_value,
            "caller": caller,
            "timestamp": timestamp,
        },
    )


def reset(previous_value: int, reset_by: bytes, timestamp: int) -> Event:
    return make_event(
        RESET,
        {
            "previous_value": previous_value,
            "new_value": 0,
            "reset_by": reset_by,
            "timestamp": timestamp,
        },
    )


# --- Sink -------------------------------------------------------------------


class EventSink:
    """
    Bounded in-memory window of events for one counter instance.

    Once ``maxlen`` events are held, the oldest are dropped; ``dropped``
    counts how many. Nothing here is persisted.
    """

    def __init__(self, maxlen: int = 1024) -> None:
        if maxlen < 1:
            raise PulseError("sink maxlen must be positive", code="event_invalid", context={"maxlen": maxlen})
        self._events: Deque[Event] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self.dropped = 0

    @property
    def maxlen(self) -> int:
        return self._events.maxlen or 0

    def append(self, event: Event) -> None:
        with self._lock:
            if len(self._events) == self._events.maxlen:
                self.dropped += 1
            self._events.append(event)

    def emit(self, name: bytes, args: Mapping[Any, Any]) -> Event:
        ev = make_event(name, args)
        self.append(ev)
        return ev

    def get_events(self, name: Optional[bytes] = None) -> List[Event]:
        with self._lock:
            snapshot = list(self._events)
        if name is None:
            return snapshot
        return [e for e in snapshot if e.name == name]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self.dropped = 0

    def __len__(self) -> int:
        return len(self._events)


def events_for_receipt(events: Iterable[Event]) -> List[CanonicalEvent]:
    """Convert events into canonical receipt events."""
    out: List[CanonicalEvent] = []
    for ev in events:
        enc_args: List[Dict[str, Any]] = []
        for k, v in ev.args.items():
            if isinstance(v, (bytes, bytearray)):
                enc_args.append({"k": k, "t": "b", "v": "0x" + bytes(v).hex()})
            elif isinstance(v, bool):
                enc_args.append({"k": k, "t": "z", "v": v})
            elif isinstance(v, int):
                enc_args.append({"k": k, "t": "i", "v": int(v)})
            else:
                raise PulseError(
                    "unsupported event arg type in receipt",
                    code="event_invalid",
                    context={"where": "receipt_value_type", "py_type": type(v).__name__},
                )
        out.append(CanonicalEvent(name="0x" + ev.name.hex(), args=tuple(enc_args)))
    return out


__all__ = [
    "Event",
    "CanonicalEvent",
    "EventSink",
    "make_event",
    "incremented",
    "reset",
    "events_for_receipt",
    "INCREMENTED",
    "RESET",
    "MAX_EVENT_NAME_BYTES",
    "MAX_KEY_LEN",
    "MAX_BYTES_LEN",
    "MAX_INT_BITS",
]
