"""Parse the model's response into an explanation and a batch of file records."""

from __future__ import annotations

import json
import re
import warnings

from omnibuilder.project.files import ProjectFile

_JSON_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")


def extract_files(text: str) -> list[ProjectFile]:
    """Return the files from the first fenced ```json block of *text*.

    A missing block yields ``[]``. Invalid JSON or a malformed record yields
    ``[]`` or skips the record, with a UserWarning either way.
    """
    match = _JSON_BLOCK_RE.search(text)
    if match is None:
        return []

    try:
        parsed = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        warnings.warn(f"Failed to parse generated JSON code block: {exc}", UserWarning, stacklevel=2)
        return []

    records = parsed.get("files") if isinstance(parsed, dict) else None
    if not isinstance(records, list):
        return []

    files: list[ProjectFile] = []
    for item in records:
        if not isinstance(item, dict):
            continue
        try:
            files.append(ProjectFile.from_dict(item))
        except ValueError as exc:
            warnings.warn(f"Skipping generated file record: {exc}", UserWarning, stacklevel=2)
    return files


def explanation(text: str) -> str:
    """Return the prose of *text* with the fenced JSON block removed."""
    return _JSON_BLOCK_RE.sub("", text, count=1).strip()
