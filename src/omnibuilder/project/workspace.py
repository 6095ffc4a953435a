"""On-disk workspace: the directory the CLI treats as the File Set.

Responsibilities:
  1. Read every visible file under the workspace root into a FileSet
     (binary assets base64-encoded, text decoded as UTF-8).
  2. Write file records back, confined to the workspace root.
     Path traversal (../../etc/passwd) → hard fail.
  3. Write each file atomically (temp file → rename).
"""

from __future__ import annotations

import base64
import binascii
import os
import tempfile
import warnings
from pathlib import Path
from typing import Iterable

from omnibuilder.project.files import FileSet, ProjectFile, is_binary_asset, language_for

# Files the CLI keeps in the workspace for itself; never part of the File Set.
STATE_FILES: frozenset[str] = frozenset(
    ["omnibuilder.yaml", ".omnibuilder.db", ".omnibuilder.db-wal", ".omnibuilder.db-shm"]
)


# ------------------------------------------------------------------
# Read
# ------------------------------------------------------------------


def read_workspace(root: Path) -> FileSet:
    """Load all project files under *root* in sorted path order.

    Hidden files/directories and omnibuilder state files are skipped. Text
    files that are not valid UTF-8 are skipped with a warning.

    Args:
        root: Workspace directory.

    Returns:
        FileSet with POSIX-style relative names.
    """
    root = root.resolve()
    files = FileSet()
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if not path.is_file() or rel.as_posix() in STATE_FILES:
            continue

        name = rel.as_posix()
        if is_binary_asset(name):
            content = base64.b64encode(path.read_bytes()).decode("ascii")
        else:
            try:
                content = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                warnings.warn(f"Skipping non-UTF-8 file '{name}'.", UserWarning, stacklevel=2)
                continue
        files.upsert(ProjectFile(name=name, content=content, language=language_for(name)))
    return files


# ------------------------------------------------------------------
# Path validation (path traversal prevention)
# ------------------------------------------------------------------


def resolve_in_workspace(root: Path, name: str) -> Path:
    """Resolve file *name* under *root*.

    Raises:
        ValueError: If *name* is absolute or escapes *root*.
    """
    if not name or Path(name).is_absolute() or name.startswith(("/", "\\")):
        raise ValueError(f"File name '{name}' must be a relative path inside the workspace.")

    base = root.resolve()
    resolved = (base / name).resolve()
    try:
        resolved.relative_to(base)
    except ValueError:
        raise ValueError(
            f"File name '{name}' resolves outside the workspace ('{base}'). "
            "Path traversal is not permitted."
        )
    return resolved


# ------------------------------------------------------------------
# Write
# ------------------------------------------------------------------


def write_files(root: Path, files: Iterable[ProjectFile]) -> list[Path]:
    """Write *files* under *root*, returning the paths written.

    Binary assets are base64-decoded; invalid base64 raises ValueError before
    anything for that file touches disk.
    """
    written: list[Path] = []
    for f in files:
        target = resolve_in_workspace(root, f.name)
        if is_binary_asset(f.name):
            try:
                data = base64.b64decode(f.content, validate=True)
            except (binascii.Error, ValueError):
                raise ValueError(f"Asset '{f.name}' does not contain valid base64 data.")
        else:
            data = f.content.encode("utf-8")
        _write_atomic(target, data)
        written.append(target)
    return written


def delete_file(root: Path, name: str) -> None:
    """Remove *name* from the workspace (no-op if already gone)."""
    target = resolve_in_workspace(root, name)
    if target.exists():
        target.unlink()


def _write_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
