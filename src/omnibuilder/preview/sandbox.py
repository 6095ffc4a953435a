"""Preview sandbox: lifecycle of the isolated execution context.

States::

    IDLE ──change──▶ ASSEMBLING ──context loaded──▶ RUNNING
      ▲                 │   │                          │
      │  build failed   │   └─no HTML──▶ UNAVAILABLE   │
      └─────────────────┘                  │           │
                       ASSEMBLING ◀─change/refresh─────┘
    any ──unmount──▶ DESTROYED (terminal)

A triggering change is a new File Set, a debug/mobile toggle or an explicit
refresh. The previous context is always closed before the next one is built,
so at most one context is live per sandbox. Each context gets a new
generation number; the telemetry channel only delivers the current one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Iterable

from omnibuilder.preview.compositor import NotComposable, compose_document
from omnibuilder.preview.telemetry import TelemetryChannel, TelemetryMessage
from omnibuilder.project.files import ProjectFile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class PreviewError(Exception):
    """Base class for preview lifecycle failures."""


class SandboxConstructionFailed(PreviewError):
    """The execution context could not be created or loaded."""


class SandboxDestroyed(PreviewError):
    """The sandbox was unmounted and cannot be used again."""


class InvalidTransition(PreviewError):
    """A state change that the lifecycle does not allow."""


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


class PreviewState(str, Enum):
    IDLE = "idle"
    ASSEMBLING = "assembling"
    RUNNING = "running"
    UNAVAILABLE = "unavailable"
    DESTROYED = "destroyed"


_TRANSITIONS: dict[PreviewState, frozenset[PreviewState]] = {
    PreviewState.IDLE: frozenset({PreviewState.ASSEMBLING, PreviewState.DESTROYED}),
    PreviewState.ASSEMBLING: frozenset(
        {PreviewState.RUNNING, PreviewState.UNAVAILABLE, PreviewState.IDLE, PreviewState.DESTROYED}
    ),
    PreviewState.RUNNING: frozenset({PreviewState.ASSEMBLING, PreviewState.DESTROYED}),
    PreviewState.UNAVAILABLE: frozenset({PreviewState.ASSEMBLING, PreviewState.DESTROYED}),
    PreviewState.DESTROYED: frozenset(),
}


# ---------------------------------------------------------------------------
# Execution context interface
# ---------------------------------------------------------------------------


class ExecutionContext(ABC):
    """One isolated run of a composed document."""

    @property
    @abstractmethod
    def url(self) -> str:
        """Address the host uses to display the running document."""

    @abstractmethod
    def load(self, document: str) -> None:
        """Start executing *document*."""

    @abstractmethod
    def close(self) -> None:
        """Tear down immediately and release backing resources. Idempotent."""


ContextFactory = Callable[[int, TelemetryChannel], ExecutionContext]


# ---------------------------------------------------------------------------
# Sandbox
# ---------------------------------------------------------------------------


class PreviewSandbox:
    """Owns the preview slot: assembly, the live context, and its telemetry.

    Args:
        factory: Builds an ExecutionContext for ``(generation, channel)``.
        channel: Telemetry channel (a new one is created if omitted).
        highlight_ms: Debug-mode click highlight duration.
        on_fatal: Called with SandboxConstructionFailed when a context
            cannot be built.
    """

    def __init__(
        self,
        factory: ContextFactory,
        channel: TelemetryChannel | None = None,
        *,
        highlight_ms: int = 1000,
        on_fatal: Callable[[SandboxConstructionFailed], None] | None = None,
    ) -> None:
        self._factory = factory
        self.channel = channel or TelemetryChannel()
        self.highlight_ms = highlight_ms
        self._on_fatal = on_fatal

        self.state = PreviewState.IDLE
        self.generation = 0
        self.context: ExecutionContext | None = None
        self.last_error: SandboxConstructionFailed | None = None

        self._files: tuple[ProjectFile, ...] = ()
        self._debug_mode = False
        self._mobile_emulation = False

    # ------------------------------------------------------------------
    # Host-facing API
    # ------------------------------------------------------------------

    def update(
        self,
        files: Iterable[ProjectFile] | None = None,
        debug_mode: bool | None = None,
        mobile_emulation: bool | None = None,
    ) -> PreviewState:
        """Apply new inputs; re-assemble if any of them changed.

        The first call always assembles.
        """
        self._ensure_mounted()
        changed = self.state is PreviewState.IDLE
        if files is not None:
            new_files = tuple(files)
            if new_files != self._files:
                self._files = new_files
                changed = True
        if debug_mode is not None and debug_mode != self._debug_mode:
            self._debug_mode = debug_mode
            changed = True
        if mobile_emulation is not None and mobile_emulation != self._mobile_emulation:
            self._mobile_emulation = mobile_emulation
            changed = True

        if changed:
            self._assemble()
        return self.state

    def refresh(self) -> PreviewState:
        """Rebuild the context even though nothing changed."""
        self._ensure_mounted()
        self._assemble()
        return self.state

    def unmount(self) -> None:
        """Tear everything down. The sandbox cannot be reused afterwards."""
        if self.state is PreviewState.DESTROYED:
            return
        self._teardown()
        self.channel.close()
        self._set_state(PreviewState.DESTROYED)

    def poll_telemetry(self) -> list[TelemetryMessage]:
        """Messages produced by the current context since the last poll."""
        return self.channel.drain()

    @property
    def url(self) -> str | None:
        return self.context.url if self.context is not None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _assemble(self) -> None:
        self._set_state(PreviewState.ASSEMBLING)
        self._teardown()

        try:
            document = compose_document(
                self._files,
                self._debug_mode,
                self._mobile_emulation,
                highlight_ms=self.highlight_ms,
            )
        except NotComposable:
            logger.info("Project has no HTML file; preview unavailable")
            self.channel.close()
            self._set_state(PreviewState.UNAVAILABLE)
            return

        self.generation += 1
        self.channel.open(self.generation)
        try:
            context = self._factory(self.generation, self.channel)
            try:
                context.load(document)
            except Exception:
                context.close()
                raise
        except Exception as exc:
            self._fail(exc)
            return

        self.context = context
        self.last_error = None
        self._set_state(PreviewState.RUNNING)
        logger.debug("Preview generation %d running at %s", self.generation, context.url)

    def _fail(self, exc: Exception) -> None:
        error = SandboxConstructionFailed(f"Could not start preview: {exc}")
        error.__cause__ = exc
        self.last_error = error
        self.channel.close()
        logger.error("Preview generation %d failed: %s", self.generation, exc)
        self._set_state(PreviewState.IDLE)
        if self._on_fatal is not None:
            self._on_fatal(error)

    def _teardown(self) -> None:
        if self.context is None:
            return
        context, self.context = self.context, None
        context.close()
        logger.debug("Preview generation %d torn down", self.generation)

    def _set_state(self, new: PreviewState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} → {new.value}")
        self.state = new

    def _ensure_mounted(self) -> None:
        if self.state is PreviewState.DESTROYED:
            raise SandboxDestroyed("Preview sandbox has been unmounted")
