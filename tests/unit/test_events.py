"""
Structured notifications: payload shapes, the bounded window and receipts.
"""

from __future__ import annotations

import pytest

from pulse import Counter, PulseError
from pulse import events as ev
from pulse.config import DEFAULT_CONFIG
from pulse.context import CallContext


def test_increment_event_shape(users) -> None:
    c = Counter(config=DEFAULT_CONFIG, initial=5)
    c.increment(CallContext(caller=users[0], timestamp=1000))

    (e,) = c.events.get_events()
    assert e.name == b"Pulse.Incremented"
    assert e.args == {
        "previous_value": 5,
        "new_value": 6,
        "caller": users[0],
        "timestamp": 1000,
    }


def test_reset_event_shape(deployer: bytes) -> None:
    c = Counter(config=DEFAULT_CONFIG, owner=deployer, initial=100)
    c.reset(CallContext(caller=deployer, timestamp=1500))

    (e,) = c.events.get_events(ev.RESET)
    assert e.args == {
        "previous_value": 100,
        "new_value": 0,
        "reset_by": deployer,
        "timestamp": 1500,
    }


def test_events_in_call_order(counter: Counter, deployer: bytes) -> None:
    counter.increment()
    counter.increment()
    counter.reset(CallContext(caller=deployer))
    counter.increment()

    names = [e.name for e in counter.events.get_events()]
    assert names == [ev.INCREMENTED, ev.INCREMENTED, ev.RESET, ev.INCREMENTED]
    assert [e.args["new_value"] for e in counter.events.get_events()] == [1, 2, 0, 1]


def test_emission_can_be_disabled() -> None:
    c = Counter(config=DEFAULT_CONFIG.with_overrides(emit_events=False))
    c.increment()
    assert c.get_current() == 1
    assert c.events.get_events() == []


def test_window_drops_oldest() -> None:
    c = Counter(config=DEFAULT_CONFIG.with_overrides(max_events=3))
    for _ in range(5):
        c.increment()

    kept = c.events.get_events()
    assert [e.args["new_value"] for e in kept] == [3, 4, 5]
    assert c.events.dropped == 2
    assert c.events.maxlen == 3


def test_receipt_encoding() -> None:
    e = ev.incremented(1, 2, b"\xab\xcd", 7)
    (r,) = ev.events_for_receipt([e])
    assert r.name == "0x" + b"Pulse.Incremented".hex()
    assert r.to_dict()["args"] == [
        {"k": "previous_value", "t": "i", "v": 1},
        {"k": "new_value", "t": "i", "v": 2},
        {"k": "caller", "t": "b", "v": "0xabcd"},
        {"k": "timestamp", "t": "i", "v": 7},
    ]


def test_bool_args_encode_as_z() -> None:
    (r,) = ev.events_for_receipt([ev.make_event(b"Flag", {b"on": True})])
    assert list(r.args) == [{"k": "on", "t": "z", "v": True}]


@pytest.mark.parametrize(
    "name,args",
    [
        ("Pulse.Incremented", {"x": 1}),
        (b"", {"x": 1}),
        (b"x" * 65, {"x": 1}),
        (b"Pulse", {"bad-key": 1}),
        (b"Pulse", {"x": 1.5}),
        (b"Pulse", {"x": 1 << 300}),
        (b"Pulse", [("x", 1)]),
    ],
)
def test_make_event_rejects_bad_input(name, args) -> None:
    with pytest.raises(PulseError) as excinfo:
        ev.make_event(name, args)
    assert excinfo.value.code == "event_invalid"


def test_sink_clear() -> None:
    sink = ev.EventSink(maxlen=2)
    sink.emit(b"A", {"a": 1})
    sink.emit(b"B", {"b": 2})
    sink.emit(b"C", {"c": 3})
    assert len(sink) == 2
    sink.clear()
    assert len(sink) == 0
    assert sink.dropped == 0


def test_counter_accepts_an_injected_sink() -> None:
    sink = ev.EventSink(maxlen=8)
    c = Counter(config=DEFAULT_CONFIG, sink=sink)
    c.increment()
    assert c.events is sink
    assert len(sink) == 1
