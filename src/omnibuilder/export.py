"""Project export: zip archive of the raw File Set, or one merged HTML file."""

from __future__ import annotations

import base64
import binascii
import zipfile
from pathlib import Path
from typing import Iterable

from omnibuilder.preview.compositor import export_single_html
from omnibuilder.project.files import FileSet, ProjectFile, is_binary_asset

__all__ = ["archive_name", "export_html", "export_single_html", "export_zip"]


def archive_name(file_name: str) -> str:
    """Archive entry name: leading slashes stripped so paths stay relative."""
    return file_name.lstrip("/")


def export_zip(files: FileSet | Iterable[ProjectFile], dest: Path) -> Path:
    """Write one archive entry per file to *dest*.

    Contents are stored as-is (no asset inlining); base64 assets are decoded
    back to their original bytes.

    Raises:
        ValueError: If there are no files to export.
    """
    file_list = list(files)
    if not file_list:
        raise ValueError("Nothing to export: the project has no files.")

    dest.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(dest, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for f in file_list:
            zf.writestr(archive_name(f.name), _file_bytes(f))
    return dest


def export_html(files: FileSet | Iterable[ProjectFile], dest: Path) -> Path:
    """Write the composed single-file document to *dest*.

    Raises:
        NotComposable: If the project has no HTML file.
    """
    document = export_single_html(files)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(document, encoding="utf-8")
    return dest


def _file_bytes(f: ProjectFile) -> bytes:
    if is_binary_asset(f.name):
        try:
            return base64.b64decode(f.content, validate=True)
        except (binascii.Error, ValueError):
            pass  # not base64 after all: store the text verbatim
    return f.content.encode("utf-8")
