"""
Pulse — a minimal on-chain style counter.

A tiny, stable façade:

- deploy(*, owner=None, backend=None, key=..., config=None) -> Counter
    Build a counter from the loaded configuration (value starts at 0).
- Counter.increment(ctx=None) -> int
- Counter.get_current() -> int
- Counter.reset(ctx) -> int              (owner only)
- abi.call(counter, name, ctx=None) -> dict
    Contract-style dispatch returning {"ok", "return", "logs", "error"}.
"""

from __future__ import annotations

from typing import Optional

from . import abi, events
from .config import PulseConfig, load_config
from .context import CallContext
from .counter import DEFAULT_KEY, Counter
from .errors import ContextError, CounterOverflow, PulseError, Unauthorized
from .storage import MemoryBackend, StorageBackend
from .version import __version__


def version() -> str:
    """Return the pulse semantic version string."""
    return __version__


def deploy(
    *,
    owner: Optional[bytes] = None,
    backend: Optional[StorageBackend] = None,
    key: bytes = DEFAULT_KEY,
    config: Optional[PulseConfig] = None,
) -> Counter:
    """Create a fresh counter. Its value starts at 0 unless `backend` already holds one."""
    return Counter(backend=backend, key=key, config=config, owner=owner)


__all__ = [
    "__version__",
    "version",
    "deploy",
    "abi",
    "events",
    "Counter",
    "CallContext",
    "PulseConfig",
    "load_config",
    "MemoryBackend",
    "StorageBackend",
    "PulseError",
    "CounterOverflow",
    "Unauthorized",
    "ContextError",
]
