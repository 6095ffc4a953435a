"""Tests for the loopback HTTP execution context."""

from __future__ import annotations

import json
import time
import urllib.error
import urllib.request

import pytest

from omnibuilder.preview.instrumentation import TELEMETRY_PATH, TELEMETRY_SOURCE
from omnibuilder.preview.sandbox import PreviewSandbox, PreviewState
from omnibuilder.preview.server import (
    SANDBOX_POLICY,
    HttpExecutionContext,
    _OrderedRelay,
    http_context_factory,
)
from omnibuilder.preview.telemetry import TelemetryChannel
from omnibuilder.project.files import FileSet

# Loopback requests must not be routed through an environment proxy.
_open = urllib.request.build_opener(urllib.request.ProxyHandler({})).open


def _post(url: str, body: bytes) -> int:
    req = urllib.request.Request(
        url.rstrip("/") + TELEMETRY_PATH,
        data=body,
        method="POST",
        headers={"Content-Type": "text/plain"},
    )
    try:
        with _open(req, timeout=5) as resp:
            return resp.status
    except urllib.error.HTTPError as exc:
        return exc.code


def _beacon(seq: int, message: str, type_: str = "log") -> bytes:
    return json.dumps(
        {"source": TELEMETRY_SOURCE, "type": type_, "message": message, "seq": seq}
    ).encode("utf-8")


@pytest.fixture
def context():
    channel = TelemetryChannel()
    channel.open(1)
    ctx = HttpExecutionContext(1, channel)
    ctx.load("<html><body>hello</body></html>")
    yield ctx, channel
    ctx.close()


# ---------------------------------------------------------------------------
# Serving
# ---------------------------------------------------------------------------


def test_serves_document_with_sandbox_policy(context) -> None:
    ctx, _ = context
    assert ctx.url.startswith("http://127.0.0.1:")
    with _open(ctx.url, timeout=5) as resp:
        body = resp.read().decode("utf-8")
        assert resp.headers["Content-Security-Policy"] == SANDBOX_POLICY
        assert resp.headers["Cache-Control"] == "no-store"
    assert body == "<html><body>hello</body></html>"


def test_policy_has_no_same_origin() -> None:
    assert "allow-scripts" in SANDBOX_POLICY
    assert "allow-same-origin" not in SANDBOX_POLICY
    assert "allow-top-navigation" not in SANDBOX_POLICY


def test_unknown_path_is_404(context) -> None:
    ctx, _ = context
    with pytest.raises(urllib.error.HTTPError) as exc_info:
        _open(ctx.url + "secret.txt", timeout=5)
    assert exc_info.value.code == 404


def test_load_twice_raises(context) -> None:
    ctx, _ = context
    with pytest.raises(RuntimeError):
        ctx.load("<p>again</p>")


def test_close_is_idempotent_and_stops_serving() -> None:
    channel = TelemetryChannel()
    ctx = HttpExecutionContext(1, channel)
    ctx.load("<p>x</p>")
    url = ctx.url
    ctx.close()
    ctx.close()
    assert ctx.url == ""
    with pytest.raises(urllib.error.URLError):
        _open(url, timeout=2)


# ---------------------------------------------------------------------------
# Telemetry endpoint
# ---------------------------------------------------------------------------


def test_beacon_is_published(context) -> None:
    ctx, channel = context
    assert _post(ctx.url, _beacon(0, "hello")) == 204
    messages = channel.drain()
    assert [m.message for m in messages] == ["hello"]
    assert messages[0].generation == 1


def test_bad_json_is_400(context) -> None:
    ctx, channel = context
    assert _post(ctx.url, b"{not json") == 400
    assert channel.drain() == []


def test_beacon_from_opaque_origin_gets_cors_header(context) -> None:
    ctx, channel = context
    req = urllib.request.Request(
        ctx.url.rstrip("/") + TELEMETRY_PATH,
        data=_beacon(0, "hi"),
        method="POST",
        headers={"Content-Type": "text/plain", "Origin": "null"},
    )
    with _open(req, timeout=5) as resp:
        assert resp.status == 204
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert [m.message for m in channel.drain()] == ["hi"]


def test_preflight_allows_json_posts(context) -> None:
    ctx, _ = context
    req = urllib.request.Request(
        ctx.url.rstrip("/") + TELEMETRY_PATH,
        method="OPTIONS",
        headers={
            "Origin": "null",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    with _open(req, timeout=5) as resp:
        assert resp.status == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]


def test_get_on_telemetry_path_is_rejected(context) -> None:
    ctx, _ = context
    with pytest.raises(urllib.error.HTTPError) as exc_info:
        _open(ctx.url.rstrip("/") + TELEMETRY_PATH, timeout=5)
    assert exc_info.value.code == 405


def test_foreign_payload_is_accepted_but_dropped(context) -> None:
    ctx, channel = context
    assert _post(ctx.url, json.dumps({"source": "x", "type": "log"}).encode()) == 204
    assert channel.drain() == []


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def test_relay_restores_production_order() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    relay = _OrderedRelay(channel, 1)
    for seq in (2, 0, 1):
        relay.accept(json.loads(_beacon(seq, f"m{seq}")))
    assert [m.message for m in channel.drain()] == ["m0", "m1", "m2"]


def test_relay_holds_back_until_gap_filled() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    relay = _OrderedRelay(channel, 1, gap_timeout=30)
    relay.accept(json.loads(_beacon(1, "second")))
    assert channel.drain() == []
    relay.accept(json.loads(_beacon(0, "first")))
    assert [m.message for m in channel.drain()] == ["first", "second"]
    relay.close()


def test_relay_skips_lost_beacon_when_buffer_overflows() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    relay = _OrderedRelay(channel, 1, gap_timeout=30)
    # seq 0 never arrives
    for seq in range(1, 70):
        relay.accept(json.loads(_beacon(seq, str(seq))))
    delivered = [m.message for m in channel.drain()]
    assert delivered == [str(i) for i in range(1, 70)]
    relay.close()


def test_relay_releases_held_beacons_after_gap_timeout() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    relay = _OrderedRelay(channel, 1, gap_timeout=0.05)
    # seq 0 never arrives and nothing else follows
    relay.accept(json.loads(_beacon(1, "second")))
    relay.accept(json.loads(_beacon(2, "third")))

    deadline = time.monotonic() + 2
    delivered: list[str] = []
    while len(delivered) < 2 and time.monotonic() < deadline:
        delivered += [m.message for m in channel.drain()]
        time.sleep(0.01)
    assert delivered == ["second", "third"]

    relay.accept(json.loads(_beacon(0, "late")))
    assert [m.message for m in channel.drain()] == ["late"]
    relay.close()


def test_relay_close_cancels_pending_flush() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    relay = _OrderedRelay(channel, 1, gap_timeout=0.05)
    relay.accept(json.loads(_beacon(1, "held")))
    relay.close()
    time.sleep(0.2)
    assert channel.drain() == []


def test_relay_passes_unnumbered_payloads_through() -> None:
    channel = TelemetryChannel()
    channel.open(1)
    relay = _OrderedRelay(channel, 1)
    relay.accept({"source": TELEMETRY_SOURCE, "type": "info", "message": "plain"})
    assert [m.message for m in channel.drain()] == ["plain"]


# ---------------------------------------------------------------------------
# With the sandbox
# ---------------------------------------------------------------------------


def test_sandbox_over_http_drops_stale_generation(web_files: FileSet) -> None:
    sandbox = PreviewSandbox(http_context_factory())
    try:
        assert sandbox.update(web_files) is PreviewState.RUNNING
        first_url = sandbox.url
        assert _post(first_url, _beacon(0, "gen1")) == 204

        sandbox.refresh()
        second_url = sandbox.url
        assert _post(second_url, _beacon(0, "gen2", "error")) == 204

        deadline = time.monotonic() + 2
        messages = []
        while not messages and time.monotonic() < deadline:
            messages = sandbox.poll_telemetry()
        assert [m.message for m in messages] == ["gen2"]
    finally:
        sandbox.unmount()
