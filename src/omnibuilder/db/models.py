"""Domain models for the persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from omnibuilder.project.files import ProjectFile


@dataclass
class SavedProject:
    id: str
    name: str
    last_modified: float
    files: list[ProjectFile] = field(default_factory=list)
