"""
Pulse counter.

One non-negative integer per instance:

    increment(ctx=None) -> int
        Add one and return the new value. Any caller, any time.

    get_current() -> int
        Return the current value. Any caller; never mutates anything.

    reset(ctx) -> int
        Set the value back to 0. Only the owner recorded at deployment may
        call it.

Every transition runs inside one read-modify-write guarded by the lock of
its (backend, key), so concurrent increments never lose updates, even
across counters attached to the same stored value. A failed transition
leaves the stored value untouched.
"""

from __future__ import annotations

from typing import Optional, Tuple

from . import events as _events
from .config import OVERFLOW_SATURATE, PulseConfig, load_config
from .context import ANONYMOUS, BytesLike, CallContext, to_bytes, to_hex
from .errors import CounterOverflow, PulseError, Unauthorized
from .logging import get_logger
from .storage import (
    MemoryBackend,
    StorageBackend,
    check_backend,
    check_key,
    decode_uint,
    encode_uint,
    key_lock,
)

log = get_logger(__name__)

DEFAULT_KEY = b"pulse:value"


class Counter:
    def __init__(
        self,
        *,
        backend: Optional[StorageBackend] = None,
        key: bytes = DEFAULT_KEY,
        config: Optional[PulseConfig] = None,
        owner: Optional[BytesLike] = None,
        initial: int = 0,
        sink: Optional[_events.EventSink] = None,
    ) -> None:
        """
        If `backend` already holds a value under `key` the counter attaches
        to it; otherwise `initial` (0 unless restoring state) is written.
        """
        self.config = config or load_config()
        self.key = check_key(key)
        # An empty principal is anonymous and never holds the reset capability.
        self.owner: Optional[bytes] = (to_bytes(owner) or None) if owner is not None else None
        self.events = sink if sink is not None else _events.EventSink(self.config.max_events)
        self._backend = check_backend(backend if backend is not None else MemoryBackend())
        # Shared by every counter attached to the same (backend, key).
        self._lock = key_lock(self._backend, self.key)

        with self._lock:
            raw = self._backend.get(self.key)
            if raw is None:
                self._write(self._checked_initial(initial))
            else:
                # Validates the stored width on attach.
                decode_uint(raw, self.config.int_bits)

        log.debug(
            "counter ready",
            extra={"key": self.key, "owner": self.owner, "value": self.get_current()},
        )

    # ---- state access (lock held by callers) ---- #

    def _checked_initial(self, initial: int) -> int:
        if isinstance(initial, bool) or not isinstance(initial, int):
            raise PulseError("initial value must be int", code="config_invalid")
        if not 0 <= initial <= self.max_value:
            raise PulseError(
                "initial value out of range",
                code="config_invalid",
                context={"initial": initial, "max": self.max_value},
            )
        return initial

    def _read(self) -> int:
        raw = self._backend.get(self.key)
        return decode_uint(raw or b"", self.config.int_bits)

    def _write(self, value: int) -> None:
        self._backend.set(self.key, encode_uint(value, self.config.int_bits))

    # ---- views ---- #

    @property
    def max_value(self) -> int:
        return self.config.max_value

    def get_current(self) -> int:
        with self._lock:
            return self._read()

    # ---- transitions ---- #

    def _increment(self, ctx: CallContext) -> Tuple[int, Optional[_events.Event]]:
        with self._lock:
            previous = self._read()
            if previous >= self.max_value:
                if self.config.overflow_policy == OVERFLOW_SATURATE:
                    log.warning(
                        "increment saturated at max",
                        extra={"value": previous, "caller": ctx.caller},
                    )
                    return previous, None
                log.warning(
                    "increment rejected: overflow",
                    extra={"value": previous, "caller": ctx.caller},
                )
                raise CounterOverflow(
                    f"counter overflow u{self.config.int_bits}",
                    context={"value": previous, "max": self.max_value, "caller": to_hex(ctx.caller)},
                )

            new = previous + 1
            ev = None
            if self.config.emit_events:
                # Payload is validated before the write.
                ev = _events.incremented(previous, new, ctx.caller, ctx.timestamp)
            self._write(new)
            if ev is not None:
                self.events.append(ev)

        log.debug("incremented", extra={"value": new, "caller": ctx.caller})
        return new, ev

    def increment(self, ctx: Optional[CallContext] = None) -> int:
        """Add one to the value and return the new value."""
        value, _ = self._increment(ctx or ANONYMOUS)
        return value

    def _reset(self, ctx: CallContext) -> Tuple[int, Optional[_events.Event]]:
        if self.owner is None or ctx.anonymous or ctx.caller != self.owner:
            raise Unauthorized(
                "reset requires the owner capability",
                context={"caller": to_hex(ctx.caller), "has_owner": self.owner is not None},
            )
        with self._lock:
            previous = self._read()
            ev = _events.reset(previous, ctx.caller, ctx.timestamp) if self.config.emit_events else None
            self._write(0)
            if ev is not None:
                self.events.append(ev)

        log.info("counter reset", extra={"previous": previous, "caller": ctx.caller})
        return 0, ev

    def reset(self, ctx: CallContext) -> int:
        """Set the value back to 0. Owner only."""
        value, _ = self._reset(ctx)
        return value

    def __repr__(self) -> str:
        return f"Counter(key={self.key!r}, value={self.get_current()}, bits={self.config.int_bits})"


__all__ = ["Counter", "DEFAULT_KEY"]
