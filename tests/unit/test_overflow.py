"""
Fixed-width boundary: error policy (default) and the opt-in saturating policy.
"""

from __future__ import annotations

import logging

import pytest

from pulse import Counter, CounterOverflow, PulseError, abi
from pulse.config import DEFAULT_CONFIG, OVERFLOW_SATURATE
from pulse.context import CallContext

U64_MAX = 2**64 - 1


def test_default_width_is_u64() -> None:
    assert Counter(config=DEFAULT_CONFIG).max_value == U64_MAX


def test_max_minus_one_then_plus_one() -> None:
    c = Counter(config=DEFAULT_CONFIG, initial=U64_MAX - 1)
    assert c.increment() == U64_MAX
    assert c.get_current() == U64_MAX


def test_increment_at_max_raises_and_keeps_value() -> None:
    c = Counter(config=DEFAULT_CONFIG, initial=U64_MAX)
    with pytest.raises(CounterOverflow) as excinfo:
        c.increment(CallContext(caller=b"\x01" * 20, timestamp=9))

    err = excinfo.value
    assert err.code == "counter_overflow"
    assert err.context["value"] == U64_MAX
    assert err.context["max"] == U64_MAX
    assert err.context["caller"] == "0x" + "01" * 20
    assert c.get_current() == U64_MAX
    assert c.events.get_events() == []


def test_overflow_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    c = Counter(config=DEFAULT_CONFIG, initial=U64_MAX)
    with caplog.at_level(logging.WARNING, logger="pulse.counter"):
        with pytest.raises(CounterOverflow):
            c.increment()
    assert any("overflow" in r.getMessage() for r in caplog.records)


def test_small_width_is_reachable() -> None:
    c = Counter(config=DEFAULT_CONFIG.with_overrides(int_bits=8))
    for _ in range(255):
        c.increment()
    assert c.get_current() == 255
    with pytest.raises(CounterOverflow):
        c.increment()
    assert c.get_current() == 255


def test_saturating_policy_stays_at_max() -> None:
    cfg = DEFAULT_CONFIG.with_overrides(int_bits=8, overflow_policy=OVERFLOW_SATURATE)
    c = Counter(config=cfg, initial=254)
    assert c.increment() == 255
    assert c.increment() == 255
    assert c.increment() == 255
    assert c.get_current() == 255
    # Only the real step is announced.
    assert len(c.events.get_events()) == 1


def test_saturation_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    cfg = DEFAULT_CONFIG.with_overrides(int_bits=8, overflow_policy=OVERFLOW_SATURATE)
    c = Counter(config=cfg, initial=255)
    with caplog.at_level(logging.WARNING, logger="pulse.counter"):
        assert c.increment() == 255
    assert any(r.getMessage() == "increment saturated at max" for r in caplog.records)


def test_saturated_call_envelope() -> None:
    cfg = DEFAULT_CONFIG.with_overrides(int_bits=8, overflow_policy=OVERFLOW_SATURATE)
    c = Counter(config=cfg, initial=255)
    res = abi.call(c, "increment", CallContext(caller=b"\x02", timestamp=5))
    assert res == {"ok": True, "return": 255, "logs": [], "error": None}
    assert c.get_current() == 255
    assert c.events.get_events() == []


def test_initial_out_of_range_is_rejected() -> None:
    with pytest.raises(PulseError) as excinfo:
        Counter(config=DEFAULT_CONFIG, initial=U64_MAX + 1)
    assert excinfo.value.code == "config_invalid"

    with pytest.raises(PulseError):
        Counter(config=DEFAULT_CONFIG, initial=-1)
