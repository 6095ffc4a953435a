"""omnibuilder projects CLI commands.

Commands:
  omnibuilder projects save <name>   — snapshot the workspace files under a name
  omnibuilder projects list          — show saved projects, newest first
  omnibuilder projects load <id>     — write a saved project into the workspace
  omnibuilder projects delete <id>   — remove a saved project
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from omnibuilder.cli.errors import err_no_files, err_project_not_found, err_unsafe_file_name
from omnibuilder.cli.state import open_db
from omnibuilder.db.repository import ProjectStore
from omnibuilder.project.workspace import delete_file, read_workspace, resolve_in_workspace, write_files

console = Console()

projects_app = typer.Typer(
    name="projects",
    help="Save, list, load and delete project snapshots.",
    add_completion=False,
)

_WORKSPACE_OPTION = typer.Option("--dir", "-d", help="Workspace directory.")


@projects_app.command("save")
def projects_save_cmd(
    name: Annotated[str, typer.Argument(help="Project name; an existing project is overwritten.")],
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Save the current workspace files as a named project."""
    files = read_workspace(workspace)
    if not files:
        console.print(err_no_files())
        raise typer.Exit(1)

    conn = open_db(workspace)
    try:
        saved = ProjectStore(conn).save(name, files)
    finally:
        conn.close()
    console.print(f"  [green]✓[/] Saved '{saved.name}' [dim]({saved.id}, {len(saved.files)} files)[/]")


@projects_app.command("list")
def projects_list_cmd(
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """List saved projects, most recently modified first."""
    conn = open_db(workspace)
    try:
        projects = ProjectStore(conn).list()
    finally:
        conn.close()

    if not projects:
        console.print(
            "[yellow]No saved projects.[/]\n"
            "  Save one with:  omnibuilder projects save <name>"
        )
        raise typer.Exit(0)

    table = Table(title="Saved Projects", show_header=True, header_style="bold")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Files", justify="right")
    table.add_column("Last modified")
    for p in projects:
        modified = datetime.fromtimestamp(p.last_modified).strftime("%Y-%m-%d %H:%M")
        table.add_row(p.id, p.name, str(len(p.files)), modified)
    console.print(table)


@projects_app.command("load")
def projects_load_cmd(
    project_id: Annotated[str, typer.Argument(help="Saved project id (see projects list).")],
    clean: Annotated[
        bool,
        typer.Option("--clean", help="Delete workspace files that are not part of the project."),
    ] = False,
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Write a saved project's files into the workspace."""
    conn = open_db(workspace)
    try:
        project = ProjectStore(conn).load(project_id)
    finally:
        conn.close()

    if project is None:
        console.print(err_project_not_found(project_id))
        raise typer.Exit(1)

    for f in project.files:
        try:
            resolve_in_workspace(workspace, f.name)
        except ValueError:
            console.print(err_unsafe_file_name(f.name))
            raise typer.Exit(1)

    removed: list[str] = []
    if clean:
        keep = {f.name for f in project.files}
        for name in read_workspace(workspace).names():
            if name not in keep:
                delete_file(workspace, name)
                removed.append(name)

    write_files(workspace, project.files)
    console.print(f"  [green]✓[/] Loaded '{project.name}' [dim]({len(project.files)} files)[/]")
    for name in removed:
        console.print(f"  [red]-[/] {name}")


@projects_app.command("delete")
def projects_delete_cmd(
    project_id: Annotated[str, typer.Argument(help="Saved project id (see projects list).")],
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Delete a saved project."""
    conn = open_db(workspace)
    try:
        store = ProjectStore(conn)
        if store.load(project_id) is None:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
        remaining = store.delete(project_id)
    finally:
        conn.close()
    console.print(f"  [green]✓[/] Deleted {project_id}  [dim]({len(remaining)} remaining)[/]")
