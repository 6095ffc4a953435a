"""Workspace state shared by CLI commands: database, repository, config."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from omnibuilder.cli.errors import err_no_repo
from omnibuilder.config import ConfigError, OmnibuilderConfig, load_config
from omnibuilder.db.connection import Database
from omnibuilder.db.repository import RepositoryStore
from omnibuilder.db.schema import initialize
from omnibuilder.vcs.models import Repository

DB_NAME = ".omnibuilder.db"

console = Console()


def db_path(workspace: Path) -> Path:
    return workspace / DB_NAME


def open_db(workspace: Path) -> sqlite3.Connection:
    """Open (and migrate) the workspace database."""
    conn = Database(db_path(workspace)).connect()
    initialize(conn)
    return conn


def load_repository_or_exit(conn: sqlite3.Connection) -> Repository:
    """Return the stored repository, or print the init hint and exit 1."""
    repo = RepositoryStore(conn).load()
    if repo is None or not repo.initialized:
        console.print(err_no_repo())
        raise typer.Exit(1)
    return repo


def load_config_or_exit(workspace: Path) -> OmnibuilderConfig:
    try:
        return load_config(project_dir=workspace)
    except ConfigError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(1)
