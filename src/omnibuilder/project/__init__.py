"""Project file model and on-disk workspace."""

from omnibuilder.project.files import (
    FileSet,
    FileType,
    ProjectFile,
    extension_of,
    is_binary_asset,
    language_for,
)
from omnibuilder.project.workspace import read_workspace, write_files

__all__ = [
    "FileSet",
    "FileType",
    "ProjectFile",
    "extension_of",
    "is_binary_asset",
    "language_for",
    "read_workspace",
    "write_files",
]
