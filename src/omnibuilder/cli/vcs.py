"""Version control commands: status, add, reset, commit, log, show.

The workspace directory is the File Set; the repository lives in the
workspace database and is loaded/saved around each pure engine call.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from omnibuilder.cli.errors import (
    err_empty_commit_message,
    err_no_staged_changes,
    err_unknown_files,
)
from omnibuilder.cli.state import load_config_or_exit, load_repository_or_exit, open_db
from omnibuilder.db.repository import RepositoryStore
from omnibuilder.project.workspace import read_workspace
from omnibuilder.vcs.engine import (
    NoStagedChanges,
    checkout_files,
    commit,
    compute_status,
    history,
    stage,
    unstage,
)
from omnibuilder.vcs.models import StatusType

console = Console()

_WORKSPACE_OPTION = typer.Option("--dir", "-d", help="Workspace directory.")

_STATUS_STYLE = {
    StatusType.ADDED: "[green]A[/]",
    StatusType.MODIFIED: "[yellow]M[/]",
    StatusType.DELETED: "[red]D[/]",
}


def status_cmd(
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Show staged and unstaged changes against HEAD."""
    conn = open_db(workspace)
    try:
        repo = load_repository_or_exit(conn)
    finally:
        conn.close()

    files = read_workspace(workspace)
    statuses = compute_status(files, repo)
    head = repo.head

    console.print(
        f"On branch [bold]{repo.branch_name}[/]"
        + (f"  ·  HEAD [cyan]{head.id}[/] {head.message}" if head else "  ·  no commits yet")
    )

    if not statuses:
        console.print("[green]✓[/] Nothing to commit, working tree clean.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("", width=1)
    table.add_column("File")
    table.add_column("Staged")
    for s in statuses:
        staged = "[green]✓[/]" if s.file_name in repo.staged_file_names else ""
        table.add_row(_STATUS_STYLE[s.status], s.file_name, staged)
    console.print(table)

    staged_count = sum(1 for s in statuses if s.file_name in repo.staged_file_names)
    console.print(f"\n  {staged_count}/{len(statuses)} changes staged")


def add_cmd(
    names: Annotated[Optional[list[str]], typer.Argument(help="File names to stage.")] = None,
    all_: Annotated[bool, typer.Option("--all", "-A", help="Stage every change.")] = False,
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Stage files for the next commit."""
    conn = open_db(workspace)
    try:
        repo = load_repository_or_exit(conn)
        files = read_workspace(workspace)

        if all_:
            targets = [s.file_name for s in compute_status(files, repo)]
        else:
            targets = list(names or [])
            known = set(files.names())
            if repo.head is not None:
                known.update(f.name for f in repo.head.files_snapshot)
            unknown = [n for n in targets if n not in known]
            if unknown:
                console.print(err_unknown_files(unknown))
                raise typer.Exit(1)

        if not targets:
            console.print("[dim]Nothing to stage.[/]")
            return

        RepositoryStore(conn).save(stage(repo, targets))
        for name in targets:
            console.print(f"  [green]+[/] {name}")
    finally:
        conn.close()


def reset_cmd(
    names: Annotated[Optional[list[str]], typer.Argument(help="File names to unstage.")] = None,
    all_: Annotated[bool, typer.Option("--all", "-A", help="Unstage everything.")] = False,
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Remove files from the staging area."""
    conn = open_db(workspace)
    try:
        repo = load_repository_or_exit(conn)
        targets = sorted(repo.staged_file_names) if all_ else list(names or [])
        if not targets:
            console.print("[dim]Nothing to unstage.[/]")
            return
        RepositoryStore(conn).save(unstage(repo, targets))
        for name in targets:
            console.print(f"  [yellow]-[/] {name}")
    finally:
        conn.close()


def commit_cmd(
    message: Annotated[str, typer.Option("--message", "-m", help="Commit message.")] = "",
    author: Annotated[
        Optional[str],
        typer.Option("--author", help="Author name (default: vcs.author from config)."),
    ] = None,
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Record the staged changes as a new commit."""
    if not message.strip():
        console.print(err_empty_commit_message())
        raise typer.Exit(1)

    cfg = load_config_or_exit(workspace)
    conn = open_db(workspace)
    try:
        repo = load_repository_or_exit(conn)
        try:
            new_repo = commit(repo, read_workspace(workspace), message, author or cfg.vcs.author)
        except NoStagedChanges:
            console.print(err_no_staged_changes())
            raise typer.Exit(1)

        RepositoryStore(conn).save(new_repo)
        head = new_repo.head
        console.print(
            f"[green]✓[/] [{new_repo.branch_name} [cyan]{head.id}[/]] {head.message}  "
            f"[dim]({len(repo.staged_file_names)} file(s))[/]"
        )
    finally:
        conn.close()


def log_cmd(
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """Show commit history, newest first."""
    conn = open_db(workspace)
    try:
        repo = load_repository_or_exit(conn)
    finally:
        conn.close()

    commits = history(repo)
    if not commits:
        console.print("[dim]No commits yet.[/]")
        return

    table = Table(title=f"History ({len(commits)})", show_header=True, header_style="bold")
    table.add_column("Commit", style="cyan")
    table.add_column("Date")
    table.add_column("Author")
    table.add_column("Files", justify="right")
    table.add_column("Message")
    for c in commits:
        date = datetime.fromtimestamp(c.timestamp).strftime("%Y-%m-%d %H:%M")
        table.add_row(c.id, date, c.author, str(len(c.files_snapshot)), c.message)
    console.print(table)


def show_cmd(
    commit_id: Annotated[str, typer.Argument(help="Commit id.")],
    workspace: Annotated[Path, _WORKSPACE_OPTION] = Path("."),
) -> None:
    """List the files captured by a commit."""
    conn = open_db(workspace)
    try:
        repo = load_repository_or_exit(conn)
    finally:
        conn.close()

    try:
        snapshot = checkout_files(repo, commit_id)
    except KeyError:
        console.print(
            f"[red]Error:[/] Unknown commit '{commit_id}'.\n"
            "  Run:  omnibuilder log  to see commit ids."
        )
        raise typer.Exit(1)

    found = repo.commit_by_id(commit_id)
    console.print(f"[cyan]{found.id}[/] {found.message}  [dim]by {found.author}[/]")
    for f in snapshot:
        console.print(f"  {f.name}  [dim]{f.language.value}, {len(f.content)} chars[/]")
