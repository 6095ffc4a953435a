"""Tests for project file records and the File Set."""

from __future__ import annotations

import pytest

from omnibuilder.project.files import (
    FileSet,
    FileType,
    ProjectFile,
    extension_of,
    is_binary_asset,
    language_for,
)


# ---------------------------------------------------------------------------
# Extensions + language
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "name, ext",
    [
        ("index.html", "html"),
        ("img/Logo.PNG", "png"),
        ("archive.tar.gz", "gz"),
        ("Makefile", ""),
        ("dir.v2/README", ""),
    ],
)
def test_extension_of(name: str, ext: str) -> None:
    assert extension_of(name) == ext


def test_language_for_known_and_unknown() -> None:
    assert language_for("app.js") is FileType.JAVASCRIPT
    assert language_for("main.py") is FileType.PYTHON
    assert language_for("notes.txt") is FileType.OTHER


def test_file_type_parse_aliases() -> None:
    assert FileType.parse("JS") is FileType.JAVASCRIPT
    assert FileType.parse("css") is FileType.CSS
    assert FileType.parse("brainfuck") is FileType.OTHER


def test_is_binary_asset() -> None:
    assert is_binary_asset("photo.jpeg")
    assert is_binary_asset("sounds/hit.mp3")
    assert not is_binary_asset("style.css")
    assert not is_binary_asset("icon.svg")


# ---------------------------------------------------------------------------
# ProjectFile
# ---------------------------------------------------------------------------


def test_from_dict_uses_declared_language() -> None:
    f = ProjectFile.from_dict({"name": "a.txt", "content": "x", "language": "python"})
    assert f.language is FileType.PYTHON


def test_from_dict_infers_language_when_missing() -> None:
    f = ProjectFile.from_dict({"name": "style.css", "content": "body{}"})
    assert f.language is FileType.CSS


def test_from_dict_rejects_empty_name() -> None:
    with pytest.raises(ValueError):
        ProjectFile.from_dict({"name": "  ", "content": "x"})


def test_to_dict_round_trips_fields() -> None:
    f = ProjectFile("index.html", "<p>", FileType.HTML)
    assert f.to_dict() == {"name": "index.html", "content": "<p>", "language": "html"}


# ---------------------------------------------------------------------------
# FileSet
# ---------------------------------------------------------------------------


def test_upsert_replaces_in_place_and_appends_new() -> None:
    fs = FileSet([ProjectFile("a.js", "1"), ProjectFile("b.js", "2")])
    fs.upsert(ProjectFile("a.js", "changed"))
    fs.upsert(ProjectFile("c.js", "3"))

    assert fs.names() == ["a.js", "b.js", "c.js"]
    assert fs.get("a.js").content == "changed"


def test_merge_batch_upserts_by_name() -> None:
    fs = FileSet([ProjectFile("index.html", "old")])
    fs.merge([ProjectFile("index.html", "new"), ProjectFile("style.css", "css")])
    assert len(fs) == 2
    assert fs.get("index.html").content == "new"


def test_remove_missing_raises_key_error() -> None:
    with pytest.raises(KeyError):
        FileSet().remove("nope.txt")


def test_copy_is_independent() -> None:
    fs = FileSet([ProjectFile("a.js", "1")])
    clone = fs.copy()
    clone.upsert(ProjectFile("b.js", "2"))
    assert "b.js" not in fs
    assert "b.js" in clone


def test_equality_is_order_sensitive() -> None:
    a, b = ProjectFile("a.js", "1"), ProjectFile("b.js", "2")
    assert FileSet([a, b]) == FileSet([a, b])
    assert FileSet([a, b]) != FileSet([b, a])


def test_to_list_preserves_insertion_order() -> None:
    fs = FileSet([ProjectFile("b.js", "2"), ProjectFile("a.js", "1")])
    assert [f.name for f in fs.to_list()] == ["b.js", "a.js"]
