"""Loopback HTTP execution context for composed preview documents.

Each context is one Starlette app served by uvicorn on an ephemeral loopback
port:

- ``GET /`` serves the document with a ``Content-Security-Policy: sandbox``
  header. The policy allows scripts, modals, forms and popups but neither
  ``allow-same-origin`` nor ``allow-top-navigation``: the document runs in an
  opaque origin with no access to the host's cookies or storage.
- ``POST /__telemetry__`` accepts the instrumentation beacons and publishes
  them on the telemetry channel under this context's generation. Beacons
  carry a ``seq`` number; concurrent requests are put back into production
  order before publishing.

``close()`` stops the server and waits for its thread; there is no handshake
with the page.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
import time
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, Response
from starlette.routing import Route

from omnibuilder.preview.instrumentation import TELEMETRY_PATH
from omnibuilder.preview.sandbox import ContextFactory, ExecutionContext
from omnibuilder.preview.telemetry import TelemetryChannel

logger = logging.getLogger(__name__)

SANDBOX_POLICY = "sandbox allow-scripts allow-modals allow-forms allow-popups"

_MAX_BODY_BYTES = 64 * 1024
# Out-of-order beacons held back at most this many before gaps are skipped.
_MAX_PENDING = 64
# Seconds a gap may stay open before the held beacons are released anyway.
_GAP_TIMEOUT = 0.5
_STARTUP_TIMEOUT = 5.0


class _OrderedRelay:
    """Publish ``seq``-numbered payloads in order, tolerating lost beacons.

    A missing ``seq`` is waited for until either ``_MAX_PENDING`` later
    beacons are held or ``gap_timeout`` seconds have passed, whichever comes
    first. A beacon that arrives after its gap was skipped is published as is.
    """

    def __init__(
        self,
        channel: TelemetryChannel,
        generation: int,
        gap_timeout: float = _GAP_TIMEOUT,
    ) -> None:
        self._channel = channel
        self._generation = generation
        self._gap_timeout = gap_timeout
        self._lock = threading.Lock()
        self._next = 0
        self._pending: dict[int, Any] = {}
        self._timer: threading.Timer | None = None

    def accept(self, payload: Any) -> None:
        seq = payload.get("seq") if isinstance(payload, dict) else None
        with self._lock:
            if not isinstance(seq, int) or seq < self._next:
                self._channel.publish(self._generation, payload)
                return
            self._pending[seq] = payload
            if len(self._pending) > _MAX_PENDING:
                self._next = min(self._pending)
            self._release()

    def close(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _release(self) -> None:
        # Caller holds the lock.
        while self._next in self._pending:
            self._channel.publish(self._generation, self._pending.pop(self._next))
            self._next += 1
        if self._pending and self._timer is None:
            self._timer = threading.Timer(self._gap_timeout, self._skip_gap)
            self._timer.daemon = True
            self._timer.start()
        elif not self._pending and self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _skip_gap(self) -> None:
        with self._lock:
            # A cancelled or replaced timer may still get here.
            if self._timer is not threading.current_thread():
                return
            self._timer = None
            if self._pending:
                logger.debug("Skipping telemetry gap at seq %d", self._next)
                self._next = min(self._pending)
            self._release()


def build_app(document: str, relay: _OrderedRelay) -> Starlette:
    """Starlette app serving *document* and feeding beacons into *relay*."""

    async def index(request: Request) -> Response:
        return HTMLResponse(
            document,
            headers={"Content-Security-Policy": SANDBOX_POLICY, "Cache-Control": "no-store"},
        )

    async def telemetry(request: Request) -> Response:
        body = await request.body()
        if not body or len(body) > _MAX_BODY_BYTES:
            return PlainTextResponse("Bad Request", status_code=400)
        try:
            payload = json.loads(body)
        except ValueError:
            return PlainTextResponse("Bad Request", status_code=400)
        relay.accept(payload)
        return Response(status_code=204)

    return Starlette(
        routes=[
            Route("/", index, methods=["GET"]),
            Route("/index.html", index, methods=["GET"]),
            Route(TELEMETRY_PATH, telemetry, methods=["POST"]),
        ],
        middleware=[
            # Sandboxed documents have an opaque origin and send ``Origin: null``.
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["POST"],
                allow_headers=["Content-Type"],
            ),
        ],
    )


class HttpExecutionContext(ExecutionContext):
    """Serve one composed document on loopback and collect its telemetry."""

    def __init__(
        self,
        generation: int,
        channel: TelemetryChannel,
        host: str = "127.0.0.1",
        port: int = 0,
    ) -> None:
        self.generation = generation
        self._channel = channel
        self._host = host
        self._port = port
        self._relay: _OrderedRelay | None = None
        self._server: uvicorn.Server | None = None
        self._socket: socket.socket | None = None
        self._address: tuple[str, int] | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        if self._address is None:
            return ""
        host, port = self._address
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{port}/"

    def load(self, document: str) -> None:
        """Bind the port and start serving *document* in a daemon thread.

        Raises:
            OSError: If the port cannot be bound.
            RuntimeError: If the context was already loaded or the server
                did not come up.
        """
        if self._server is not None:
            raise RuntimeError("Execution context already loaded")

        # Bound here so bind errors surface synchronously and the port is
        # known before uvicorn starts.
        family = socket.getaddrinfo(self._host, self._port, type=socket.SOCK_STREAM)[0][0]
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.bind((self._host, self._port))
        except OSError:
            sock.close()
            raise

        self._relay = _OrderedRelay(self._channel, self.generation)
        config = uvicorn.Config(
            build_app(document, self._relay),
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=1,
        )
        self._server = uvicorn.Server(config)
        self._socket = sock
        self._address = sock.getsockname()[:2]
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [sock]},
            name=f"omnibuilder-preview-{self.generation}",
            daemon=True,
        )
        self._thread.start()

        deadline = time.monotonic() + _STARTUP_TIMEOUT
        while not self._server.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                self.close()
                raise RuntimeError("Preview server did not start")
            time.sleep(0.01)
        logger.debug("Serving generation %d at %s", self.generation, self.url)

    def close(self) -> None:
        server, self._server = self._server, None
        if server is None:
            return
        server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=_STARTUP_TIMEOUT)
            self._thread = None
        if self._relay is not None:
            self._relay.close()
            self._relay = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._address = None


def http_context_factory(host: str = "127.0.0.1", port: int = 0) -> ContextFactory:
    """Return a ContextFactory producing HttpExecutionContext instances."""

    def factory(generation: int, channel: TelemetryChannel) -> ExecutionContext:
        return HttpExecutionContext(generation, channel, host=host, port=port)

    return factory
