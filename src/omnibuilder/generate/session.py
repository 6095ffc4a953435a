"""One generation turn: stream the model, then collect the file batch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from omnibuilder.generate.llm_client import stream_completion
from omnibuilder.generate.parser import explanation, extract_files
from omnibuilder.generate.prompts import build_messages
from omnibuilder.project.files import FileSet, ProjectFile


@dataclass
class GenerationResult:
    text: str
    files: list[ProjectFile] = field(default_factory=list)

    @property
    def explanation(self) -> str:
        return explanation(self.text)


def generate_project(
    prompt: str,
    files: Iterable[ProjectFile],
    model: str,
    *,
    max_tokens: int = 16_384,
    on_chunk: Callable[[str], None] | None = None,
) -> GenerationResult:
    """Stream a response for *prompt* given the current *files*.

    Args:
        prompt: The user's request.
        files: Current project files (context for edits).
        model: LiteLLM model string.
        max_tokens: Output token limit.
        on_chunk: Called with every streamed text chunk.

    Returns:
        GenerationResult with the full text and the parsed file batch.
    """
    messages = build_messages(prompt, files)
    parts: list[str] = []
    for chunk in stream_completion(model, messages, max_tokens=max_tokens):
        parts.append(chunk)
        if on_chunk is not None:
            on_chunk(chunk)
    text = "".join(parts)
    return GenerationResult(text=text, files=extract_files(text))


def apply_generation(files: FileSet, result: GenerationResult) -> FileSet:
    """Return a copy of *files* with the generated batch upserted by name."""
    merged = files.copy()
    merged.merge(result.files)
    return merged
