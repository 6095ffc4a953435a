"""Domain models for the snapshot version engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from omnibuilder.project.files import ProjectFile


class StatusType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileStatus:
    file_name: str
    status: StatusType


@dataclass(frozen=True)
class Commit:
    """An immutable snapshot of the project files.

    Attributes:
        id: Short opaque token, unique within a session.
        message: Commit message, stored verbatim.
        author: Author name, stored verbatim.
        timestamp: Creation time in epoch seconds.
        parent_id: Id of the previous HEAD, or None for the root commit.
        files_snapshot: Deep copy of every file the commit captures.
    """

    id: str
    message: str
    author: str
    timestamp: float
    parent_id: str | None
    files_snapshot: tuple[ProjectFile, ...] = ()


@dataclass(frozen=True)
class Repository:
    """Single-branch repository state. ``commits`` is ordered newest-first."""

    initialized: bool = False
    branch_name: str = "main"
    commits: tuple[Commit, ...] = ()
    staged_file_names: frozenset[str] = frozenset()
    _index: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Frozen: populate the id → position index through object.__setattr__.
        object.__setattr__(
            self, "_index", {c.id: i for i, c in enumerate(self.commits)}
        )

    @property
    def head(self) -> Commit | None:
        return self.commits[0] if self.commits else None

    def commit_by_id(self, commit_id: str) -> Commit | None:
        pos = self._index.get(commit_id)
        return self.commits[pos] if pos is not None else None
