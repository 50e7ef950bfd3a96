"""
pulse.storage — key/value state behind a counter.

Design goals
------------
- Deterministic: values are fixed-width big-endian unsigned integers.
- Simple default: in-process memory backend for local runs & tests.
- Pluggable: a tiny backend interface so a host can swap in a real state DB.

Public API
----------
- StorageBackend                     (protocol: get/set/delete/exists)
- MemoryBackend                      (thread-safe dict, per-key locks)
- key_lock(backend, key)             (lock shared by all counters on that key)
- encode_uint(value, bits) -> bytes  (exactly bits/8 bytes, rounded up)
- decode_uint(raw, bits) -> int
"""

from __future__ import annotations

import threading
import weakref
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

from .errors import PulseError

MAX_KEY_BYTES = 64


# ---------------------------- Backend API ---------------------------- #


@runtime_checkable
class StorageBackend(Protocol):
    """Minimal backend interface for counter state."""

    def get(self, key: bytes) -> Optional[bytes]: ...
    def set(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def exists(self, key: bytes) -> bool: ...


class MemoryBackend:
    """Thread-safe in-memory backend for local runs and tests."""

    def __init__(self) -> None:
        self._store: Dict[bytes, bytes] = {}
        self._key_locks: Dict[bytes, Any] = {}
        self._lock = threading.RLock()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._store.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._store[key] = value

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._store.pop(key, None)

    def exists(self, key: bytes) -> bool:
        with self._lock:
            return key in self._store

    def snapshot(self) -> Dict[bytes, bytes]:
        with self._lock:
            return dict(self._store)

    def key_lock(self, key: bytes) -> threading.RLock:
        """Lock shared by every counter attached to `key` on this backend."""
        with self._lock:
            lk = self._key_locks.get(key)
            if lk is None:
                lk = self._key_locks[key] = threading.RLock()
            return lk


def check_backend(backend: object) -> StorageBackend:
    if not isinstance(backend, StorageBackend):
        missing = [a for a in ("get", "set", "delete", "exists") if not callable(getattr(backend, a, None))]
        raise PulseError(
            f"backend missing methods: {', '.join(missing)}",
            code="storage_invalid",
            context={"missing": missing},
        )
    return backend


# Backends without their own key_lock(): locks keyed by backend identity.
_FOREIGN_LOCKS: "weakref.WeakKeyDictionary[Any, Dict[bytes, Any]]" = weakref.WeakKeyDictionary()
_FOREIGN_BY_ID: Dict[Tuple[int, bytes], Tuple[Any, Any]] = {}
_FOREIGN_GUARD = threading.Lock()


def key_lock(backend: StorageBackend, key: bytes) -> Any:
    """
    Return the re-entrant lock guarding read-modify-write on `key` in
    `backend`. Every counter attached to the same (backend, key) gets the
    same lock.
    """
    own = getattr(backend, "key_lock", None)
    if callable(own):
        return own(key)
    with _FOREIGN_GUARD:
        try:
            per_key = _FOREIGN_LOCKS.setdefault(backend, {})
        except TypeError:
            # Not weak-referenceable: pin the backend so its id stays unique.
            slot = _FOREIGN_BY_ID.get((id(backend), key))
            if slot is None:
                slot = _FOREIGN_BY_ID[(id(backend), key)] = (backend, threading.RLock())
            return slot[1]
        lk = per_key.get(key)
        if lk is None:
            lk = per_key[key] = threading.RLock()
        return lk


def check_key(key: object) -> bytes:
    if not isinstance(key, (bytes, bytearray)):
        raise PulseError("storage key must be bytes", code="storage_invalid")
    if len(key) == 0:
        raise PulseError("storage key must be non-empty", code="storage_invalid")
    if len(key) > MAX_KEY_BYTES:
        raise PulseError(f"storage key too long (>{MAX_KEY_BYTES} bytes)", code="storage_invalid")
    return bytes(key)


# ------------------------------ Int codec ------------------------------ #


def width_bytes(bits: int) -> int:
    return (bits + 7) // 8


def encode_uint(value: int, bits: int) -> bytes:
    """Encode `value` as a big-endian unsigned integer of exactly width_bytes(bits)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise PulseError("stored value must be int", code="storage_invalid")
    if value < 0 or value >= (1 << bits):
        raise PulseError(
            f"stored value out of range for u{bits}",
            code="storage_invalid",
            context={"value": value, "bits": bits},
        )
    return value.to_bytes(width_bytes(bits), "big")


def decode_uint(raw: bytes, bits: int) -> int:
    """
    Decode a stored value. Shorter encodings are left-padded; longer ones
    and values past the width are rejected as corrupt state.
    """
    if len(raw) > width_bytes(bits):
        raise PulseError(
            "stored value wider than configured width",
            code="storage_invalid",
            context={"len": len(raw), "bits": bits},
        )
    value = int.from_bytes(raw, "big") if raw else 0
    if value >= (1 << bits):
        raise PulseError(
            f"stored value out of range for u{bits}",
            code="storage_invalid",
            context={"value": value, "bits": bits},
        )
    return value


__all__ = [
    "StorageBackend",
    "MemoryBackend",
    "check_backend",
    "check_key",
    "encode_uint",
    "decode_uint",
    "width_bytes",
    "key_lock",
    "MAX_KEY_BYTES",
]
