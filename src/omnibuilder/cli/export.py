"""omnibuilder export — write the project as a zip archive or one HTML file."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from omnibuilder.cli.errors import err_no_files, err_not_composable
from omnibuilder.export import export_html, export_zip
from omnibuilder.preview.compositor import NotComposable
from omnibuilder.project.workspace import read_workspace

console = Console()


def export_cmd(
    zip_path: Annotated[
        Optional[Path],
        typer.Option("--zip", help="Write every file into a zip archive."),
    ] = None,
    html_path: Annotated[
        Optional[Path],
        typer.Option("--html", help="Write one self-contained HTML document."),
    ] = None,
    workspace: Annotated[Path, typer.Option("--dir", "-d", help="Workspace directory.")] = Path("."),
) -> None:
    """Export the workspace files."""
    if zip_path is None and html_path is None:
        console.print(
            "[red]Error:[/] Nothing to do.\n"
            "  Run:  omnibuilder export --zip project.zip  or  --html index.html"
        )
        raise typer.Exit(1)

    files = read_workspace(workspace)
    if not files:
        console.print(err_no_files())
        raise typer.Exit(1)

    if zip_path is not None:
        export_zip(files, zip_path)
        console.print(f"  [green]✓[/] {zip_path}  [dim]({len(files)} files)[/]")

    if html_path is not None:
        try:
            export_html(files, html_path)
        except NotComposable:
            console.print(err_not_composable())
            raise typer.Exit(1)
        console.print(f"  [green]✓[/] {html_path}")
