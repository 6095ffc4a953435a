"""omnibuilder CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from omnibuilder.cli.export import export_cmd
from omnibuilder.cli.generate import generate_cmd
from omnibuilder.cli.init import init_cmd
from omnibuilder.cli.preview import preview_cmd
from omnibuilder.cli.projects import projects_app
from omnibuilder.cli.vcs import add_cmd, commit_cmd, log_cmd, reset_cmd, show_cmd, status_cmd


def _version_callback(value: bool) -> None:
    if value:
        try:
            ver = importlib.metadata.version("omnibuilder")
        except importlib.metadata.PackageNotFoundError:
            ver = "dev"
        typer.echo(f"omnibuilder {ver}")
        raise typer.Exit()


app = typer.Typer(
    name="omnibuilder",
    help=(
        "omnibuilder — generate, version and preview small web projects.\n\n"
        "  omnibuilder generate  Ask a model to create or edit workspace files.\n"
        "  omnibuilder preview   Run the project in a sandboxed local page."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """omnibuilder — generate, version and preview small web projects."""


app.command("init")(init_cmd)
app.command("status")(status_cmd)
app.command("add")(add_cmd)
app.command("reset")(reset_cmd)
app.command("commit")(commit_cmd)
app.command("log")(log_cmd)
app.command("show")(show_cmd)
app.command("preview")(preview_cmd)
app.command("export")(export_cmd)
app.command("generate")(generate_cmd)
app.add_typer(projects_app, name="projects")
