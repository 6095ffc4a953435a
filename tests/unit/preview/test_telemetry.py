"""Tests for telemetry messages and the generation-tagged channel."""

from __future__ import annotations

import threading

from omnibuilder.preview.instrumentation import TELEMETRY_SOURCE
from omnibuilder.preview.telemetry import LogLevel, TelemetryChannel, TelemetryMessage


def _payload(type_: str = "log", message: str = "hi") -> dict:
    return {"source": TELEMETRY_SOURCE, "type": type_, "message": message}


# ---------------------------------------------------------------------------
# Payload validation
# ---------------------------------------------------------------------------


def test_from_payload_valid() -> None:
    msg = TelemetryMessage.from_payload(_payload("warn", "careful"), generation=3)
    assert msg.type is LogLevel.WARN
    assert msg.message == "careful"
    assert msg.generation == 3
    assert msg.source == TELEMETRY_SOURCE


def test_from_payload_rejects_foreign_source() -> None:
    assert TelemetryMessage.from_payload({"source": "other", "type": "log", "message": "x"}, 1) is None


def test_from_payload_rejects_unknown_type() -> None:
    assert TelemetryMessage.from_payload(_payload("debug"), 1) is None


def test_from_payload_rejects_non_dict() -> None:
    assert TelemetryMessage.from_payload(["log"], 1) is None


def test_from_payload_stringifies_message() -> None:
    msg = TelemetryMessage.from_payload({**_payload(), "message": 42}, 1)
    assert msg.message == "42"


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


def test_drain_returns_current_generation_in_order() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    for i in range(3):
        assert channel.publish(1, _payload(message=str(i)))
    assert [m.message for m in channel.drain()] == ["0", "1", "2"]
    assert channel.drain() == []


def test_stale_generation_is_dropped() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    channel.publish(1, _payload(message="old"))
    channel.open(2)
    channel.publish(1, _payload(message="late"))
    channel.publish(2, _payload(message="new"))
    assert [m.message for m in channel.drain()] == ["new"]


def test_closed_channel_delivers_nothing() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    channel.publish(1, _payload())
    channel.close()
    assert channel.generation is None
    assert channel.drain() == []


def test_publish_invalid_payload_returns_false() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    assert not channel.publish(1, {"type": "log"})
    assert channel.drain() == []


def test_publish_from_threads() -> None:
    channel = TelemetryChannel()
    channel.open(7)

    def worker(n: int) -> None:
        for i in range(50):
            channel.publish(7, _payload(message=f"{n}-{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    messages = channel.drain()
    assert len(messages) == 200
    for n in range(4):
        own = [m.message for m in messages if m.message.startswith(f"{n}-")]
        assert own == [f"{n}-{i}" for i in range(50)]
