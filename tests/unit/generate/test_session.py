"""Tests for prompt assembly and one generation turn (model calls mocked)."""

from __future__ import annotations

import json
from unittest.mock import patch

from omnibuilder.generate.prompts import BINARY_PLACEHOLDER, build_messages, build_system_prompt
from omnibuilder.generate.session import GenerationResult, apply_generation, generate_project
from omnibuilder.project.files import FileSet, ProjectFile

_RESPONSE = (
    "Added a heading.\n"
    "```json\n"
    + json.dumps({"files": [{"name": "index.html", "content": "<h1>new</h1>", "language": "html"}]})
    + "\n```"
)


# ------------------------------------------------------------------
# Prompts
# ------------------------------------------------------------------

def test_system_prompt_for_new_project() -> None:
    prompt = build_system_prompt([])
    assert "This is a new project." in prompt
    assert '"files"' in prompt


def test_system_prompt_lists_files_and_hides_binary() -> None:
    prompt = build_system_prompt(
        [ProjectFile("index.html", "<p>hello</p>"), ProjectFile("logo.png", "iVBORw0KGgo=")]
    )
    assert "--- START OF FILE: index.html ---\n<p>hello</p>" in prompt
    assert BINARY_PLACEHOLDER in prompt
    assert "iVBORw0KGgo=" not in prompt


def test_build_messages_roles() -> None:
    messages = build_messages("make it blue", [])
    assert [m["role"] for m in messages] == ["system", "user"]
    assert messages[1]["content"] == "make it blue"


# ------------------------------------------------------------------
# Session
# ------------------------------------------------------------------

def test_generate_project_streams_and_parses() -> None:
    chunks = [_RESPONSE[:10], _RESPONSE[10:]]
    seen: list[str] = []
    with patch("omnibuilder.generate.session.stream_completion", return_value=iter(chunks)) as mock:
        result = generate_project("add heading", [], "gemini/x", max_tokens=99, on_chunk=seen.append)

    assert seen == chunks
    assert result.text == _RESPONSE
    assert result.explanation == "Added a heading."
    assert [f.name for f in result.files] == ["index.html"]
    assert mock.call_args.kwargs["max_tokens"] == 99


def test_apply_generation_upserts_without_mutating() -> None:
    files = FileSet([ProjectFile("index.html", "<h1>old</h1>"), ProjectFile("style.css", "a{}")])
    result = GenerationResult(
        text="", files=[ProjectFile("index.html", "<h1>new</h1>"), ProjectFile("app.js", "1")]
    )
    merged = apply_generation(files, result)

    assert merged.names() == ["index.html", "style.css", "app.js"]
    assert merged.get("index.html").content == "<h1>new</h1>"
    assert files.get("index.html").content == "<h1>old</h1>"
