"""Typed telemetry channel between preview execution contexts and the host.

Every execution context is tagged with a generation number. The channel only
delivers messages whose generation matches the current one, so output from a
context that was torn down while its messages were in flight is dropped.
Messages of one generation are delivered in the order they were published.

``publish`` may be called from a serving thread; ``drain`` is called by the
single-threaded host.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from omnibuilder.preview.instrumentation import TELEMETRY_SOURCE


class LogLevel(str, Enum):
    LOG = "log"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


@dataclass(frozen=True)
class TelemetryMessage:
    """One console/error/interaction event relayed out of a preview."""

    type: LogLevel
    message: str
    generation: int
    timestamp: float = field(default_factory=time.time)
    source: str = TELEMETRY_SOURCE

    @classmethod
    def from_payload(cls, payload: Any, generation: int) -> "TelemetryMessage | None":
        """Validate a raw ``{source, type, message}`` payload.

        Returns None for payloads from other sources or with an unknown type.
        """
        if not isinstance(payload, dict) or payload.get("source") != TELEMETRY_SOURCE:
            return None
        try:
            level = LogLevel(payload.get("type"))
        except ValueError:
            return None
        message = payload.get("message", "")
        if not isinstance(message, str):
            message = str(message)
        return cls(type=level, message=message, generation=generation)


class TelemetryChannel:
    """Generation-tagged FIFO of TelemetryMessage."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[TelemetryMessage] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._generation: int | None = None

    @property
    def generation(self) -> int | None:
        return self._generation

    def open(self, generation: int) -> None:
        """Make *generation* the only one whose messages are delivered."""
        with self._lock:
            self._generation = generation

    def close(self) -> None:
        """Stop delivering; everything still queued is dropped on drain."""
        with self._lock:
            self._generation = None

    def publish(self, generation: int, payload: Any) -> bool:
        """Enqueue *payload* for *generation*. Returns False if it is invalid."""
        msg = TelemetryMessage.from_payload(payload, generation)
        if msg is None:
            return False
        self._queue.put(msg)
        return True

    def drain(self) -> list[TelemetryMessage]:
        """Return every queued message of the current generation, oldest first."""
        with self._lock:
            current = self._generation
        delivered: list[TelemetryMessage] = []
        while True:
            try:
                msg = self._queue.get_nowait()
            except queue.Empty:
                break
            if current is not None and msg.generation == current:
                delivered.append(msg)
        return delivered
