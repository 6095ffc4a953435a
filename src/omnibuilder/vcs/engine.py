"""Snapshot version engine: status, staging and commits over a File Set.

All operations are pure: they take a Repository value and return a new one,
never mutating their inputs. The host serializes calls (single writer).

Status is computed by diffing the File Set against HEAD's snapshot by name
and full content equality. A commit starts from HEAD's snapshot and replaces
every staged name with the File Set's current record; a staged name missing
from the File Set is recorded as a deletion.
"""

from __future__ import annotations

import dataclasses
import secrets
import string
import time
from typing import Iterable

from omnibuilder.project.files import FileSet, ProjectFile
from omnibuilder.vcs.models import Commit, FileStatus, Repository, StatusType

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 7


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class VcsError(Exception):
    """Base class for version engine failures."""


class NoStagedChanges(VcsError):
    """Raised when a commit is attempted with nothing staged."""

    def __init__(self) -> None:
        super().__init__("No files staged for commit")


# ---------------------------------------------------------------------------
# Repository lifecycle
# ---------------------------------------------------------------------------


def initialize_repository() -> Repository:
    """Return a fresh, empty repository on branch ``main``."""
    return Repository(
        initialized=True,
        branch_name="main",
        commits=(),
        staged_file_names=frozenset(),
    )


def generate_commit_id() -> str:
    """Return a 7-character base-36 token (collisions accepted as negligible)."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


def compute_status(files: FileSet | Iterable[ProjectFile], repo: Repository) -> list[FileStatus]:
    """Diff *files* against HEAD.

    Returns added/modified entries in File Set order followed by deleted
    entries in HEAD order. Unchanged files are omitted.
    """
    current = list(files)
    head_files = {f.name: f for f in _head_snapshot(repo)}
    current_names = {f.name for f in current}

    result: list[FileStatus] = []
    for f in current:
        head_file = head_files.get(f.name)
        if head_file is None:
            result.append(FileStatus(f.name, StatusType.ADDED))
        elif head_file.content != f.content:
            result.append(FileStatus(f.name, StatusType.MODIFIED))

    for name in head_files:
        if name not in current_names:
            result.append(FileStatus(name, StatusType.DELETED))

    return result


# ---------------------------------------------------------------------------
# Staging
# ---------------------------------------------------------------------------


def stage(repo: Repository, names: Iterable[str]) -> Repository:
    """Add *names* to the staging set (duplicates collapse)."""
    return dataclasses.replace(repo, staged_file_names=repo.staged_file_names | frozenset(names))


def unstage(repo: Repository, names: Iterable[str]) -> Repository:
    """Remove *names* from the staging set."""
    return dataclasses.replace(repo, staged_file_names=repo.staged_file_names - frozenset(names))


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


def commit(
    repo: Repository,
    files: FileSet | Iterable[ProjectFile],
    message: str,
    author: str = "User",
) -> Repository:
    """Record the staged changes as a new HEAD commit.

    Message and author are stored verbatim; validating them is the caller's
    job.

    Raises:
        NoStagedChanges: If nothing is staged. *repo* is left unchanged.
    """
    if not repo.staged_file_names:
        raise NoStagedChanges()

    current = {f.name: f for f in files}
    head = repo.head
    snapshot = list(_head_snapshot(repo))

    for name in sorted(repo.staged_file_names):
        snapshot = [f for f in snapshot if f.name != name]
        if name in current:
            snapshot.append(current[name])

    new_commit = Commit(
        id=generate_commit_id(),
        message=message,
        author=author,
        timestamp=time.time(),
        parent_id=head.id if head else None,
        files_snapshot=tuple(snapshot),
    )
    return dataclasses.replace(
        repo,
        commits=(new_commit, *repo.commits),
        staged_file_names=frozenset(),
    )


# ---------------------------------------------------------------------------
# History access
# ---------------------------------------------------------------------------


def history(repo: Repository) -> list[Commit]:
    """Return all commits newest-first."""
    return list(repo.commits)


def checkout_files(repo: Repository, commit_id: str | None = None) -> FileSet:
    """Return the snapshot of *commit_id* (HEAD if None) as a new FileSet.

    Raises:
        KeyError: If *commit_id* is unknown, or the repository has no commits.
    """
    if commit_id is None:
        target = repo.head
        if target is None:
            raise KeyError("Repository has no commits")
    else:
        target = repo.commit_by_id(commit_id)
        if target is None:
            raise KeyError(f"Unknown commit '{commit_id}'")
    return FileSet(target.files_snapshot)


def _head_snapshot(repo: Repository) -> tuple[ProjectFile, ...]:
    head = repo.head
    return head.files_snapshot if head else ()
