"""Tests for omnibuilder export."""

from __future__ import annotations

import zipfile
from pathlib import Path

from typer.testing import CliRunner

from omnibuilder.cli.main import app

runner = CliRunner()


def _export(ws: Path, *args: str):
    return runner.invoke(app, ["export", "--dir", str(ws), *args])


def test_export_zip(tmp_path: Path) -> None:
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "index.html").write_text("<p>x</p>", encoding="utf-8")
    dest = tmp_path / "out.zip"
    result = _export(ws, "--zip", str(dest))
    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(dest) as zf:
        assert zf.namelist() == ["index.html"]


def test_export_html(tmp_path: Path) -> None:
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "index.html").write_text(
        '<head><link rel="stylesheet" href="style.css"></head><body></body>', encoding="utf-8"
    )
    (ws / "style.css").write_text("p { margin: 0; }", encoding="utf-8")
    dest = tmp_path / "single.html"

    result = _export(ws, "--html", str(dest))
    assert result.exit_code == 0, result.output
    document = dest.read_text(encoding="utf-8")
    assert "p { margin: 0; }" in document
    assert "<link" not in document


def test_export_html_non_web_fails(tmp_path: Path) -> None:
    ws = tmp_path / "ws"
    ws.mkdir()
    (ws / "main.py").write_text("print(1)", encoding="utf-8")
    result = _export(ws, "--html", str(tmp_path / "x.html"))
    assert result.exit_code == 1
    assert "Not a web project" in result.output


def test_export_requires_a_target(tmp_path: Path) -> None:
    result = _export(tmp_path)
    assert result.exit_code == 1
    assert "Nothing to do" in result.output


def test_export_empty_workspace_fails(tmp_path: Path) -> None:
    result = _export(tmp_path, "--zip", str(tmp_path / "empty.zip"))
    assert result.exit_code == 1
    assert "no project files" in result.output
