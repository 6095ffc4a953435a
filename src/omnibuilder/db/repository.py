"""Repository pattern for all workspace database operations.

Two stores share one connection:
  - ProjectStore: named project snapshots (save/list/load/delete).
  - RepositoryStore: the version engine's Repository value, so a CLI session
    can pick up commit history and staging where the last one left off.
"""

from __future__ import annotations

import sqlite3
import time
import uuid
from typing import Iterable

from omnibuilder.db.models import SavedProject
from omnibuilder.project.files import FileType, ProjectFile
from omnibuilder.vcs.models import Commit, Repository


class ProjectStore:
    """Data access for saved projects.

    Save/update is keyed by project name (flat namespace); deletion and
    loading are keyed by the opaque id. The connection is owned by the
    caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see omnibuilder.db.schema.initialize).
        """
        self._conn = conn

    def save(self, name: str, files: Iterable[ProjectFile]) -> SavedProject:
        """Upsert the project called *name*.

        An existing project keeps its id; its file list is replaced wholesale.

        Args:
            name: Project name (unique).
            files: Files to store, in order.

        Returns:
            The stored SavedProject.
        """
        file_list = list(files)
        now = time.time()
        row = self._conn.execute("SELECT id FROM projects WHERE name = ?", (name,)).fetchone()
        project_id = row["id"] if row else uuid.uuid4().hex

        with self._conn:
            self._conn.execute(
                """
                INSERT INTO projects (id, name, last_modified) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET last_modified = excluded.last_modified
                """,
                (project_id, name, now),
            )
            self._conn.execute("DELETE FROM project_files WHERE project_id = ?", (project_id,))
            self._conn.executemany(
                """
                INSERT INTO project_files (project_id, position, name, content, language)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (project_id, i, f.name, f.content, f.language.value)
                    for i, f in enumerate(file_list)
                ],
            )

        return SavedProject(id=project_id, name=name, last_modified=now, files=file_list)

    def list(self) -> list[SavedProject]:
        """Return all saved projects, most recently modified first."""
        rows = self._conn.execute(
            "SELECT id, name, last_modified FROM projects ORDER BY last_modified DESC"
        ).fetchall()
        return [self._hydrate(r) for r in rows]

    def load(self, project_id: str) -> SavedProject | None:
        """Return the project with *project_id*, or None if not found."""
        row = self._conn.execute(
            "SELECT id, name, last_modified FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return self._hydrate(row) if row else None

    def delete(self, project_id: str) -> list[SavedProject]:
        """Delete *project_id* (files cascade) and return the remaining projects."""
        with self._conn:
            self._conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        return self.list()

    def _hydrate(self, row: sqlite3.Row) -> SavedProject:
        files = self._conn.execute(
            """
            SELECT name, content, language FROM project_files
            WHERE project_id = ? ORDER BY position
            """,
            (row["id"],),
        ).fetchall()
        return SavedProject(
            id=row["id"],
            name=row["name"],
            last_modified=row["last_modified"],
            files=[_row_to_file(f) for f in files],
        )


class RepositoryStore:
    """Persist the workspace's version engine state (one repository)."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def load(self) -> Repository | None:
        """Return the stored Repository, or None if none was initialised."""
        state = self._conn.execute(
            "SELECT initialized, branch_name FROM vcs_repository WHERE id = 1"
        ).fetchone()
        if state is None:
            return None

        commits: list[Commit] = []
        for row in self._conn.execute(
            """
            SELECT id, message, author, timestamp, parent_id FROM vcs_commits
            ORDER BY seq DESC
            """
        ).fetchall():
            files = self._conn.execute(
                """
                SELECT name, content, language FROM vcs_commit_files
                WHERE commit_id = ? ORDER BY position
                """,
                (row["id"],),
            ).fetchall()
            commits.append(
                Commit(
                    id=row["id"],
                    message=row["message"],
                    author=row["author"],
                    timestamp=row["timestamp"],
                    parent_id=row["parent_id"],
                    files_snapshot=tuple(_row_to_file(f) for f in files),
                )
            )

        staged = frozenset(
            r["name"] for r in self._conn.execute("SELECT name FROM vcs_staged").fetchall()
        )
        return Repository(
            initialized=bool(state["initialized"]),
            branch_name=state["branch_name"],
            commits=tuple(commits),
            staged_file_names=staged,
        )

    def save(self, repo: Repository) -> None:
        """Replace the stored state with *repo*.

        Commits are immutable, so only ones not yet stored are inserted;
        commits no longer in *repo* (after a re-initialisation) are removed.
        """
        known = {
            r["id"]: r["seq"]
            for r in self._conn.execute("SELECT id, seq FROM vcs_commits").fetchall()
        }
        wanted = {c.id for c in repo.commits}

        with self._conn:
            self._conn.execute(
                """
                INSERT INTO vcs_repository (id, initialized, branch_name) VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    initialized = excluded.initialized,
                    branch_name = excluded.branch_name
                """,
                (int(repo.initialized), repo.branch_name),
            )
            stale = [cid for cid in known if cid not in wanted]
            if stale:
                placeholders = ",".join("?" * len(stale))
                self._conn.execute(
                    f"DELETE FROM vcs_commits WHERE id IN ({placeholders})", stale
                )
            next_seq = max(known.values(), default=-1) + 1
            # Oldest first, so seq grows with commit age.
            for c in reversed(repo.commits):
                if c.id in known:
                    continue
                self._conn.execute(
                    """
                    INSERT INTO vcs_commits (id, seq, message, author, timestamp, parent_id)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (c.id, next_seq, c.message, c.author, c.timestamp, c.parent_id),
                )
                self._conn.executemany(
                    """
                    INSERT INTO vcs_commit_files (commit_id, position, name, content, language)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        (c.id, i, f.name, f.content, f.language.value)
                        for i, f in enumerate(c.files_snapshot)
                    ],
                )
                next_seq += 1
            self._conn.execute("DELETE FROM vcs_staged")
            self._conn.executemany(
                "INSERT INTO vcs_staged (name) VALUES (?)",
                [(name,) for name in sorted(repo.staged_file_names)],
            )

    def clear(self) -> None:
        """Forget the repository and its whole history."""
        with self._conn:
            self._conn.execute("DELETE FROM vcs_commits")
            self._conn.execute("DELETE FROM vcs_staged")
            self._conn.execute("DELETE FROM vcs_repository")


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_file(row: sqlite3.Row) -> ProjectFile:
    return ProjectFile(
        name=row["name"],
        content=row["content"],
        language=FileType.parse(row["language"]),
    )
