"""
pulse.config — counter width, overflow policy, event window and logging knobs.

This module centralizes configuration for the pulse counter. It has NO
third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (PULSE_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean/enum):
  - PULSE_INT_BITS          (int)    default: 64      bounds: 8..256
  - PULSE_OVERFLOW_POLICY   (enum)   default: error   one of: error, saturate
  - PULSE_EMIT_EVENTS       (bool)   default: true
  - PULSE_MAX_EVENTS        (int)    default: 1024    bounds: 1..1_000_000
  - PULSE_LOG_LEVEL         (str)    default: INFO
  - PULSE_LOG_FORMAT        (enum)   default: text    one of: text, json

Out-of-range integers are clamped to their bounds; unparsable values fall back
to the default.

Usage:
    from pulse.config import load_config
    CFG = load_config()
    if CFG.overflow_policy == "saturate": ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Tuple
import os

from .errors import PulseError

OVERFLOW_ERROR = "error"
OVERFLOW_SATURATE = "saturate"
OVERFLOW_POLICIES: Tuple[str, ...] = (OVERFLOW_ERROR, OVERFLOW_SATURATE)

LOG_FORMATS: Tuple[str, ...] = ("text", "json")

MIN_INT_BITS = 8
MAX_INT_BITS = 256


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in ("1", "true", "t", "yes", "y", "on"):
        return True
    if val in ("0", "false", "f", "no", "n", "off"):
        return False
    return default


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_choice(name: str, default: str, choices: Tuple[str, ...]) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val if val in choices else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class PulseConfig:
    # Fixed width of the stored unsigned value
    int_bits: int
    # What increment does at the maximum: raise CounterOverflow or stay at max
    overflow_policy: str

    # Structured notifications
    emit_events: bool
    max_events: int

    log_level: str
    log_format: str

    def __post_init__(self) -> None:
        if not MIN_INT_BITS <= self.int_bits <= MAX_INT_BITS:
            raise PulseError(
                f"int_bits must be within {MIN_INT_BITS}..{MAX_INT_BITS}",
                code="config_invalid",
                context={"int_bits": self.int_bits},
            )
        if self.overflow_policy not in OVERFLOW_POLICIES:
            raise PulseError(
                "unknown overflow policy",
                code="config_invalid",
                context={"overflow_policy": self.overflow_policy},
            )
        if self.max_events < 1:
            raise PulseError(
                "max_events must be positive",
                code="config_invalid",
                context={"max_events": self.max_events},
            )
        if self.log_format not in LOG_FORMATS:
            raise PulseError(
                "unknown log format",
                code="config_invalid",
                context={"log_format": self.log_format},
            )

    @property
    def max_value(self) -> int:
        return (1 << self.int_bits) - 1

    def with_overrides(self, **changes: Any) -> "PulseConfig":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "int_bits": self.int_bits,
            "overflow_policy": self.overflow_policy,
            "emit_events": self.emit_events,
            "max_events": self.max_events,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


DEFAULT_CONFIG = PulseConfig(
    int_bits=64,
    overflow_policy=OVERFLOW_ERROR,
    emit_events=True,
    max_events=1024,
    log_level="INFO",
    log_format="text",
)


@lru_cache(maxsize=1)
def load_config() -> PulseConfig:
    """
    Build and cache a PulseConfig from environment + safe defaults.

    Tests that tweak the environment should call ``load_config.cache_clear()``.
    """
    d = DEFAULT_CONFIG
    return PulseConfig(
        int_bits=_env_int("PULSE_INT_BITS", d.int_bits, min_v=MIN_INT_BITS, max_v=MAX_INT_BITS),
        overflow_policy=_env_choice("PULSE_OVERFLOW_POLICY", d.overflow_policy, OVERFLOW_POLICIES),
        emit_events=_env_bool("PULSE_EMIT_EVENTS", d.emit_events),
        max_events=_env_int("PULSE_MAX_EVENTS", d.max_events, min_v=1, max_v=1_000_000),
        log_level=(os.getenv("PULSE_LOG_LEVEL") or d.log_level).strip().upper(),
        log_format=_env_choice("PULSE_LOG_FORMAT", d.log_format, LOG_FORMATS),
    )


__all__ = [
    "PulseConfig",
    "DEFAULT_CONFIG",
    "load_config",
    "OVERFLOW_ERROR",
    "OVERFLOW_SATURATE",
    "OVERFLOW_POLICIES",
    "LOG_FORMATS",
    "MIN_INT_BITS",
    "MAX_INT_BITS",
]
