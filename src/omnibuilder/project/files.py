"""Project file records and the ordered File Set.

A File Set is the mutable collection the host edits. Generation batches are
merged into it by name (upsert); everything downstream — status, commits,
preview composition, export — reads it in insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator

# Binary assets are stored as base64 text and never shown to the model.
_BINARY_EXTENSIONS: frozenset[str] = frozenset(
    ["png", "jpg", "jpeg", "gif", "webp", "mp3", "wav", "ogg", "mp4", "webm", "pdf"]
)


class FileType(str, Enum):
    """Language tag carried by every project file."""

    HTML = "html"
    CSS = "css"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JSON = "json"
    MARKDOWN = "markdown"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "FileType":
        """Map a free-form language string onto a tag; unknown → OTHER."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return _LANGUAGE_ALIASES.get(str(value).strip().lower(), cls.OTHER)


_LANGUAGE_ALIASES: dict[str, FileType] = {
    "js": FileType.JAVASCRIPT,
    "ts": FileType.TYPESCRIPT,
    "py": FileType.PYTHON,
    "md": FileType.MARKDOWN,
    "htm": FileType.HTML,
}

_EXTENSION_LANGUAGE: dict[str, FileType] = {
    "html": FileType.HTML,
    "htm": FileType.HTML,
    "css": FileType.CSS,
    "js": FileType.JAVASCRIPT,
    "mjs": FileType.JAVASCRIPT,
    "ts": FileType.TYPESCRIPT,
    "tsx": FileType.TYPESCRIPT,
    "py": FileType.PYTHON,
    "json": FileType.JSON,
    "md": FileType.MARKDOWN,
}


def extension_of(name: str) -> str:
    """Return the lower-cased extension of *name* without the dot ('' if none)."""
    base = name.rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def language_for(name: str) -> FileType:
    """Infer the language tag for *name* from its extension."""
    return _EXTENSION_LANGUAGE.get(extension_of(name), FileType.OTHER)


def is_binary_asset(name: str) -> bool:
    """True if *name* is an image/audio/video/pdf asset stored as base64."""
    return extension_of(name) in _BINARY_EXTENSIONS


@dataclass(frozen=True)
class ProjectFile:
    """One named file. ``content`` is UTF-8 text, or base64 for binary assets."""

    name: str
    content: str
    language: FileType = FileType.OTHER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectFile":
        """Build a record from a ``{name, content, language}`` mapping.

        Raises:
            ValueError: If ``name`` is missing or empty.
        """
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValueError("File record has no name")
        language = data.get("language")
        return cls(
            name=name,
            content=str(data.get("content") or ""),
            language=FileType.parse(language) if language else language_for(name),
        )

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "content": self.content, "language": self.language.value}


class FileSet:
    """Ordered mapping of file name → ProjectFile. Names are unique."""

    def __init__(self, files: Iterable[ProjectFile] = ()) -> None:
        self._files: dict[str, ProjectFile] = {}
        for f in files:
            self.upsert(f)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def upsert(self, file: ProjectFile) -> None:
        """Replace the record with the same name in place, or append it."""
        self._files[file.name] = file

    def merge(self, files: Iterable[ProjectFile]) -> None:
        """Upsert every record of a generation batch, in order."""
        for f in files:
            self.upsert(f)

    def remove(self, name: str) -> None:
        """Delete *name*. Raises KeyError if absent."""
        del self._files[name]

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, name: str) -> ProjectFile | None:
        return self._files.get(name)

    def names(self) -> list[str]:
        return list(self._files)

    def to_list(self) -> list[ProjectFile]:
        return list(self._files.values())

    def copy(self) -> "FileSet":
        return FileSet(self._files.values())

    def __iter__(self) -> Iterator[ProjectFile]:
        return iter(list(self._files.values()))

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, name: object) -> bool:
        return name in self._files

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSet):
            return NotImplemented
        return self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"FileSet({self.names()!r})"
