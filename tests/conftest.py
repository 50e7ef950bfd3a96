"""
Shared pytest fixtures:
- Principals mirroring a devnet account set (deployer, wallet_1..wallet_3)
- A pinned default config so PULSE_* variables in the shell never leak in
- A freshly deployed counter owned by the deployer
"""
from __future__ import annotations

import typing as t

import pytest

from pulse import Counter, deploy
from pulse.config import DEFAULT_CONFIG, PulseConfig, load_config
from pulse.context import CallContext

ACCOUNTS: t.Dict[str, bytes] = {
    "deployer": bytes.fromhex("6a1f0e5c3b4d2a19887766554433221100ffeedd"),
    "wallet_1": bytes.fromhex("11" * 20),
    "wallet_2": bytes.fromhex("22" * 20),
    "wallet_3": bytes.fromhex("33" * 20),
}


@pytest.fixture(autouse=True)
def _fresh_config_cache() -> t.Iterator[None]:
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def accounts() -> t.Dict[str, bytes]:
    return dict(ACCOUNTS)


@pytest.fixture
def deployer() -> bytes:
    return ACCOUNTS["deployer"]


@pytest.fixture
def users() -> t.List[bytes]:
    return [ACCOUNTS["wallet_1"], ACCOUNTS["wallet_2"], ACCOUNTS["wallet_3"]]


@pytest.fixture
def config() -> PulseConfig:
    return DEFAULT_CONFIG


@pytest.fixture
def counter(config: PulseConfig, deployer: bytes) -> Counter:
    return deploy(owner=deployer, config=config)


def ctx_for(caller: bytes, timestamp: int = 0) -> CallContext:
    return CallContext(caller=caller, timestamp=timestamp)
