"""Binary asset inlining for composed documents.

The default strategy is a global text substitution: every literal occurrence
of an asset's file name anywhere in the document is replaced with a ``data:``
URI. It matches attribute values, ``url()`` references and string literals
alike, and will also over-match a name that appears inside an unrelated
substring (``logo.png`` inside ``my-logo.png``). That is a known limitation,
not an error path; a stricter rewriter can replace it by implementing
AssetInliner.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from omnibuilder.project.files import ProjectFile, extension_of

MIME_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",
}

_DEFAULT_MIME = "application/octet-stream"


def is_inlinable_asset(name: str) -> bool:
    """True if *name* has an image/audio/video extension from MIME_TYPES."""
    return extension_of(name) in MIME_TYPES


def mime_type_for(name: str) -> str:
    return MIME_TYPES.get(extension_of(name), _DEFAULT_MIME)


def data_uri(file: ProjectFile) -> str:
    """Return ``data:<mime>;base64,<content>`` for a base64-encoded asset."""
    return f"data:{mime_type_for(file.name)};base64,{file.content}"


class AssetInliner(ABC):
    """Strategy that embeds binary assets into a document."""

    @abstractmethod
    def inline(self, document: str, files: Iterable[ProjectFile]) -> str:
        """Return *document* with references to assets in *files* embedded."""


class GlobalTextInliner(AssetInliner):
    """Replace every literal occurrence of each asset name with its data URI."""

    def inline(self, document: str, files: Iterable[ProjectFile]) -> str:
        for f in files:
            if is_inlinable_asset(f.name):
                document = document.replace(f.name, data_uri(f))
        return document
