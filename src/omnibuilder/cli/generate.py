"""omnibuilder generate — ask the model to create or edit project files.

Usage:
  omnibuilder generate "build a snake game" [--model gemini/gemini-2.5-pro]

The current workspace files are sent as context. The model's explanation is
printed and the returned files are written into the workspace (upsert by
name). Nothing is staged or committed automatically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn

from omnibuilder.cli.errors import err_no_api_key, err_unsafe_file_name
from omnibuilder.cli.state import load_config_or_exit
from omnibuilder.generate.llm_client import provider_of, validate_api_key
from omnibuilder.generate.prompts import build_messages
from omnibuilder.generate.session import generate_project
from omnibuilder.project.workspace import read_workspace, resolve_in_workspace, write_files

console = Console()


def generate_cmd(
    prompt: Annotated[str, typer.Argument(help="What to build or change.")],
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="LiteLLM model string (default: generation.model)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show the assembled prompt without calling the model."),
    ] = False,
    workspace: Annotated[Path, typer.Option("--dir", "-d", help="Workspace directory.")] = Path("."),
) -> None:
    """Generate or edit project files from a prompt."""
    cfg = load_config_or_exit(workspace)
    model_name = model or cfg.generation.model
    files = read_workspace(workspace)

    if dry_run:
        messages = build_messages(prompt, files)
        console.print(f"[bold]Model:[/] {model_name}")
        console.print(f"[bold]Context files:[/] {len(files)}")
        for message in messages:
            console.print(f"\n[bold]{message['role']}[/] ({len(message['content']):,} chars)")
        console.print("\n[dim]No generation performed.[/]")
        return

    # ---- API key validation ----
    try:
        validate_api_key(model_name)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(model_name)))
        raise typer.Exit(1)

    # ---- Stream ----
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task(f"Generating with {model_name}…", total=None)
        received = 0

        def _on_chunk(chunk: str) -> None:
            nonlocal received
            received += len(chunk)
            prog.update(task, description=f"Generating with {model_name}… {received:,} chars")

        try:
            result = generate_project(
                prompt,
                files,
                model_name,
                max_tokens=cfg.generation.max_tokens,
                on_chunk=_on_chunk,
            )
        except Exception as exc:
            console.print(f"[red]Error:[/] Generation failed: {exc}")
            raise typer.Exit(1)

    if result.explanation:
        console.print(Markdown(result.explanation))

    if not result.files:
        console.print("\n[yellow]⚠[/]  The response contained no files; workspace unchanged.")
        return

    # ---- Write ----
    for f in result.files:
        try:
            resolve_in_workspace(workspace, f.name)
        except ValueError:
            console.print(err_unsafe_file_name(f.name))
            raise typer.Exit(1)

    try:
        write_files(workspace, result.files)
    except ValueError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)

    console.print()
    for f in result.files:
        marker = "[yellow]M[/]" if f.name in files else "[green]A[/]"
        console.print(f"  {marker} {f.name}")
    console.print(f"\n  {len(result.files)} file(s) written. Review with:  omnibuilder status")
