# -*- coding: utf-8 -*-
"""
tests.property package bootstrap.

Registers named Hypothesis profiles (dev/ci/fast/stress) and selects one via
HYPOTHESIS_PROFILE, otherwise "ci" when CI is set and "dev" locally.

Usage in tests:
    from tests.property import st, given, principals

Environment knobs:
- HYPOTHESIS_PROFILE=dev|ci|fast|stress
- CI=true (auto-pick the 'ci' profile if HYPOTHESIS_PROFILE not set)
"""
from __future__ import annotations

import os
from typing import Final

from hypothesis import HealthCheck, Verbosity, given, settings
from hypothesis import strategies as st

# The autouse config-cache fixture in tests/conftest.py is function scoped
# and carries no per-example state.
_SUPPRESSED = (HealthCheck.too_slow, HealthCheck.function_scoped_fixture)

# Deadlines are off everywhere.
settings.register_profile(
    "dev",
    settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=_SUPPRESSED,
        verbosity=Verbosity.normal,
        derandomize=False,
    ),
)

settings.register_profile(
    "ci",
    settings(
        max_examples=200,
        deadline=None,
        suppress_health_check=_SUPPRESSED,
        verbosity=Verbosity.verbose,
        derandomize=True,
    ),
)

settings.register_profile(
    "fast",
    settings(max_examples=25, deadline=None, suppress_health_check=_SUPPRESSED, verbosity=Verbosity.normal),
)

settings.register_profile(
    "stress",
    settings(
        max_examples=1000,
        deadline=None,
        suppress_health_check=_SUPPRESSED,
        verbosity=Verbosity.normal,
        derandomize=True,
    ),
)


def _env_truthy(name: str) -> bool:
    v = os.getenv(name)
    return (v or "").lower() not in ("", "0", "false", "no", "off")


_active: Final[str] = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev")
settings.load_profile(_active)


def active_profile() -> str:
    """Return the name of the active Hypothesis profile."""
    return _active


def principals():
    """Caller addresses: anonymous or 20-byte accounts."""
    return st.one_of(st.just(b""), st.binary(min_size=20, max_size=20))


__all__ = ["st", "given", "active_profile", "principals"]
