"""omnibuilder rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from omnibuilder.cli.errors import err_no_repo
    console.print(err_no_repo())
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'gemini'. Set:  export GEMINI_API_KEY=...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
        "groq": "GROQ_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=..."
    )


def err_no_repo() -> str:
    """Version control was not initialised in this workspace."""
    return (
        "[red]Error:[/] No repository in this workspace.\n"
        "  Run:  omnibuilder init"
    )


def err_no_staged_changes() -> str:
    """Commit attempted with an empty staging set."""
    return (
        "[red]Error:[/] No files staged for commit.\n"
        "  Stage changes first:  omnibuilder add <file>…  (or --all)"
    )


def err_empty_commit_message() -> str:
    return (
        "[red]Error:[/] Commit message is empty.\n"
        "  Run:  omnibuilder commit -m \"describe your change\""
    )


def err_unknown_files(names: list[str]) -> str:
    """Staging names that are neither in the workspace nor in HEAD."""
    listed = ", ".join(names)
    return (
        f"[red]Error:[/] Unknown file(s): {listed}\n"
        "  Run:  omnibuilder status  to see changed files."
    )


def err_not_composable() -> str:
    """Informational: the project has no HTML file, so nothing to preview."""
    return (
        "[yellow]Not a web project:[/] no .html file found.\n"
        "  Files are stored and versioned, but only web projects can be previewed.\n"
        "  Review the code in the workspace or export it to run locally."
    )


def err_preview_failed(reason: str) -> str:
    """The preview execution context could not be started."""
    return (
        f"[red]Error:[/] Preview could not start: {reason}\n"
        "  Retry with:  omnibuilder preview"
    )


def err_no_files() -> str:
    return (
        "[red]Error:[/] The workspace has no project files.\n"
        "  Generate some:  omnibuilder generate \"build a snake game\""
    )


def err_project_not_found(project_id: str) -> str:
    return (
        f"[red]Error:[/] Saved project '{project_id}' not found.\n"
        "  Run:  omnibuilder projects list  to see saved projects."
    )


def err_unsafe_file_name(name: str) -> str:
    """A generated or restored file would land outside the workspace."""
    return (
        f"[red]Error:[/] File name is not allowed: '{name}'\n"
        "  File names must be relative paths inside the workspace."
    )


def warn_reinitialized() -> str:
    """Shown after init --force discarded the commit history."""
    return (
        "[yellow]⚠[/] Repository re-initialised — previous commit history was discarded.\n"
        "  Save a snapshot first next time:  omnibuilder projects save <name>"
    )
