"""Snapshot-based version engine."""

from omnibuilder.vcs.engine import (
    NoStagedChanges,
    VcsError,
    checkout_files,
    commit,
    compute_status,
    generate_commit_id,
    history,
    initialize_repository,
    stage,
    unstage,
)
from omnibuilder.vcs.models import Commit, FileStatus, Repository, StatusType

__all__ = [
    "Commit",
    "FileStatus",
    "NoStagedChanges",
    "Repository",
    "StatusType",
    "VcsError",
    "checkout_files",
    "commit",
    "compute_status",
    "generate_commit_id",
    "history",
    "initialize_repository",
    "stage",
    "unstage",
]
