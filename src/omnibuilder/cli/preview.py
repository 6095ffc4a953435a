"""omnibuilder preview — serve the composed project on loopback.

Usage:
  omnibuilder preview [--debug] [--mobile] [--watch] [--verbose]

The composed document runs in a sandboxed page served by a local HTTP
server; console output, uncaught errors and (with --debug) element clicks
are relayed back here. --watch re-reads the workspace every
``preview.poll_interval`` seconds and rebuilds the preview on change.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from omnibuilder.cli.errors import err_no_files, err_not_composable, err_preview_failed
from omnibuilder.cli.state import load_config_or_exit
from omnibuilder.preview.sandbox import PreviewSandbox, PreviewState, SandboxConstructionFailed
from omnibuilder.preview.server import http_context_factory
from omnibuilder.preview.telemetry import LogLevel, TelemetryMessage
from omnibuilder.project.workspace import read_workspace

console = Console()

_LEVEL_STYLE = {
    LogLevel.LOG: "",
    LogLevel.INFO: "cyan",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
}


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger("omnibuilder")
    logger.setLevel(level)
    if verbose and not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False))


def _print_telemetry(messages: list[TelemetryMessage]) -> None:
    for msg in messages:
        style = _LEVEL_STYLE[msg.type]
        label = f"[{style}]{msg.type.value:<5}[/]" if style else f"{msg.type.value:<5}"
        console.print(f"  {label} {msg.message}", highlight=False)


def _report(sandbox: PreviewSandbox, state: PreviewState) -> None:
    if state is PreviewState.RUNNING:
        console.print(f"[green]✓[/] Preview running at [bold]{sandbox.url}[/]  [dim](Ctrl-C to stop)[/]")
    elif state is PreviewState.UNAVAILABLE:
        console.print(err_not_composable())


def preview_cmd(
    debug: Annotated[
        Optional[bool],
        typer.Option("--debug/--no-debug", help="Enable the click inspector."),
    ] = None,
    mobile: Annotated[
        Optional[bool],
        typer.Option("--mobile/--no-mobile", help="Present the page as a phone browser."),
    ] = None,
    watch: Annotated[
        bool,
        typer.Option("--watch/--no-watch", help="Rebuild the preview when workspace files change."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log sandbox lifecycle events."),
    ] = False,
    once: Annotated[
        bool,
        typer.Option("--once", hidden=True, help="Build, relay pending telemetry and stop (for testing)."),
    ] = False,
    workspace: Annotated[Path, typer.Option("--dir", "-d", help="Workspace directory.")] = Path("."),
) -> None:
    """Serve a live preview of the project and relay its console output."""
    _configure_logging(verbose)
    cfg = load_config_or_exit(workspace)
    debug_mode = cfg.preview.debug_mode if debug is None else debug
    mobile_emulation = cfg.preview.mobile_emulation if mobile is None else mobile

    files = read_workspace(workspace)
    if not files:
        console.print(err_no_files())
        raise typer.Exit(1)

    failures: list[SandboxConstructionFailed] = []
    sandbox = PreviewSandbox(
        http_context_factory(cfg.preview.host),
        highlight_ms=cfg.preview.highlight_ms,
        on_fatal=failures.append,
    )

    try:
        state = sandbox.update(files, debug_mode, mobile_emulation)
        if failures:
            console.print(err_preview_failed(str(failures[-1].__cause__ or failures[-1])))
            raise typer.Exit(1)
        _report(sandbox, state)
        if state is PreviewState.UNAVAILABLE and not watch:
            raise typer.Exit(0)

        while True:
            _print_telemetry(sandbox.poll_telemetry())
            if once:
                break
            time.sleep(cfg.preview.poll_interval)
            if not watch:
                continue
            current = read_workspace(workspace)
            if state is PreviewState.IDLE and current == files:
                continue  # failed build: wait for an edit before retrying
            files = current
            seen_failures, seen_generation = len(failures), sandbox.generation
            new_state = sandbox.update(files)
            if len(failures) > seen_failures:
                console.print(err_preview_failed(str(failures[-1].__cause__ or failures[-1])))
            elif new_state is not state or sandbox.generation != seen_generation:
                # each rebuild binds a fresh port, so the URL changes
                _report(sandbox, new_state)
            state = new_state
    except KeyboardInterrupt:
        console.print("\n[dim]Preview stopped.[/]")
    finally:
        sandbox.unmount()
