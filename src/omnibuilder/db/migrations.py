"""Forward-only migration runner for the workspace database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# Saved projects: flat namespace, upserted by name, deleted by id.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL UNIQUE,
    last_modified   REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS project_files (
    project_id      TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    name            TEXT NOT NULL,
    content         TEXT NOT NULL,
    language        TEXT NOT NULL,
    PRIMARY KEY (project_id, name)
);
"""

# Version engine state for the workspace: one repository, single branch.
_V2_SQL = """
CREATE TABLE IF NOT EXISTS vcs_repository (
    id              INTEGER PRIMARY KEY CHECK (id = 1),
    initialized     INTEGER NOT NULL,
    branch_name     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS vcs_commits (
    id              TEXT PRIMARY KEY,
    seq             INTEGER NOT NULL UNIQUE,
    message         TEXT NOT NULL,
    author          TEXT NOT NULL,
    timestamp       REAL NOT NULL,
    parent_id       TEXT
);

CREATE TABLE IF NOT EXISTS vcs_commit_files (
    commit_id       TEXT NOT NULL REFERENCES vcs_commits(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    name            TEXT NOT NULL,
    content         TEXT NOT NULL,
    language        TEXT NOT NULL,
    PRIMARY KEY (commit_id, name)
);

CREATE TABLE IF NOT EXISTS vcs_staged (
    name            TEXT PRIMARY KEY
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
