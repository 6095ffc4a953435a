"""omnibuilder init — prepare a workspace.

Creates:
  .omnibuilder.db    — workspace database (saved projects + version history)
  omnibuilder.yaml   — project config (project: + preview: sections)
  ~/.omnibuilder/config.yaml — global defaults, if missing

and initialises an empty repository on branch ``main``. ``--force``
re-initialises: the previous commit history is discarded.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from omnibuilder.cli.errors import warn_reinitialized
from omnibuilder.cli.state import DB_NAME, open_db
from omnibuilder.config import PROJECT_CONFIG_NAME, ensure_global_config, write_project_config
from omnibuilder.db.repository import RepositoryStore
from omnibuilder.vcs.engine import initialize_repository

console = Console()


def init_cmd(
    workspace: Annotated[
        Path,
        typer.Option("--dir", "-d", help="Workspace directory. Defaults to current directory."),
    ] = Path("."),
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Project name (defaults to the directory name)."),
    ] = "",
    force: Annotated[
        bool,
        typer.Option("--force", help="Re-initialise, discarding commit history."),
    ] = False,
) -> None:
    """Initialise a workspace: config, database and an empty repository."""
    workspace = workspace.resolve()
    workspace.mkdir(parents=True, exist_ok=True)

    cfg_path = ensure_global_config()
    console.print(f"  [dim]Global config: {cfg_path}[/]")

    write_project_config(workspace, name or workspace.name)
    console.print(f"  [green]✓[/] {PROJECT_CONFIG_NAME}")

    conn = open_db(workspace)
    try:
        store = RepositoryStore(conn)
        existing = store.load()
        if existing is not None and existing.initialized and not force:
            console.print(
                f"[yellow]⚠[/]  Repository already initialised ({len(existing.commits)} commits).\n"
                "  Use --force to start over."
            )
            raise typer.Exit(0)

        store.clear()
        store.save(initialize_repository())
        console.print(f"  [green]✓[/] {DB_NAME}")
        console.print("  [green]✓[/] repository on branch [bold]main[/]")
        if existing is not None and existing.commits:
            console.print(f"\n{warn_reinitialized()}")
    finally:
        conn.close()
