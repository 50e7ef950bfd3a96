"""pulse.version — semantic version resolution.

Resolution order → env → installed package metadata → fallback.

Environment override:
- PULSE_VERSION  (exact value)
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata as importlib_metadata
from typing import Optional

# Bump on changes to stored encoding or event payloads.
BASE_VERSION = "0.1.0"

DIST_NAME = "pulse-counter"


def _pkg_metadata_version(dist_name: str = DIST_NAME) -> Optional[str]:
    """Try to read installed package version; None if unavailable."""
    try:
        v = importlib_metadata.version(dist_name)
    except importlib_metadata.PackageNotFoundError:
        return None
    return v if v and v != "0.0.0" else None


@lru_cache(maxsize=1)
def compute_version() -> str:
    """
    Resolve a version string with this precedence:
      1) PULSE_VERSION (exact value)
      2) Installed metadata version for 'pulse-counter'
      3) BASE_VERSION + '+dev'
    """
    env = os.getenv("PULSE_VERSION")
    if env:
        return env

    meta_v = _pkg_metadata_version()
    if meta_v:
        return meta_v

    return f"{BASE_VERSION}+dev"


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "DIST_NAME", "compute_version"]
