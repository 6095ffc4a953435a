"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from omnibuilder.db.connection import Database
from omnibuilder.db.schema import initialize
from omnibuilder.project.files import FileSet, FileType, ProjectFile


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".omnibuilder.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def web_files() -> FileSet:
    """A minimal three-file web project."""
    return FileSet(
        [
            ProjectFile(
                "index.html",
                '<html><head><link rel="stylesheet" href="style.css"></head>'
                '<body><h1>Hi</h1><script src="script.js"></script></body></html>',
                FileType.HTML,
            ),
            ProjectFile("style.css", "h1 { color: red; }", FileType.CSS),
            ProjectFile("script.js", "console.log('ready');", FileType.JAVASCRIPT),
        ]
    )


@pytest.fixture(autouse=True)
def _isolated_global_config(tmp_path_factory, monkeypatch):
    """Point the global config at a temp home so tests never touch ~/.omnibuilder."""
    monkeypatch.setattr(
        "omnibuilder.config._GLOBAL_CONFIG_PATH",
        tmp_path_factory.mktemp("home") / ".omnibuilder" / "config.yaml",
    )
    monkeypatch.delenv("OMNIBUILDER_MODEL", raising=False)
    monkeypatch.delenv("OMNIBUILDER_AUTHOR", raising=False)
