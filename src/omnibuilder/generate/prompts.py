"""System prompt for project generation.

The model answers in two parts: a prose explanation, then exactly one fenced
```json block ``{"files": [{"name", "content", "language"}]}`` holding the
full content of every file it adds or changes.
"""

from __future__ import annotations

import textwrap
from typing import Iterable

from omnibuilder.project.files import ProjectFile, is_binary_asset

BINARY_PLACEHOLDER = "[Binary Data Asset Available]"

_SYSTEM_PROMPT = textwrap.dedent(
    """\
    You are an expert full-stack developer. Build, edit and extend the user's
    project step by step.

    RESPONSE FORMAT (STRICT):
    1. Explanation: a short step-by-step description of what you build or change.
    2. Code block: a single JSON object in a ```json fenced block:

    ```json
    {{
      "files": [
        {{ "name": "index.html", "content": "...", "language": "html" }},
        {{ "name": "style.css", "content": "...", "language": "css" }}
      ]
    }}
    ```

    RULES:
    1. Any language is allowed; only web projects (an index.html) can be previewed.
    2. For web apps, default to separate index.html, style.css and script.js unless
       the user asks for a single file.
    3. When editing, return the FULL updated content of every affected file.
    4. Uploaded assets are project files; reference them by file name
       (e.g. <img src="photo.png">).
    5. The JSON must match: {{ "files": [ {{ "name": "...", "content": "...", "language": "..." }} ] }}

    {context}
    """
)


def build_files_context(files: Iterable[ProjectFile]) -> str:
    """Describe the current project for the model; binary assets are elided."""
    file_list = list(files)
    if not file_list:
        return "This is a new project."

    sections = [
        "THE USER HAS AN EXISTING PROJECT. EDIT OR ADD TO THESE FILES.",
        "DO NOT DELETE EXISTING LOGIC UNLESS REQUESTED.",
        "",
        "CURRENT FILES:",
    ]
    for f in file_list:
        body = BINARY_PLACEHOLDER if is_binary_asset(f.name) else f.content
        sections.append(f"--- START OF FILE: {f.name} ---\n{body}\n--- END OF FILE: {f.name} ---")
    return "\n".join(sections)


def build_system_prompt(files: Iterable[ProjectFile]) -> str:
    return _SYSTEM_PROMPT.format(context=build_files_context(files))


def build_messages(prompt: str, files: Iterable[ProjectFile]) -> list[dict]:
    """OpenAI-style message list for one generation turn."""
    return [
        {"role": "system", "content": build_system_prompt(files)},
        {"role": "user", "content": prompt},
    ]
