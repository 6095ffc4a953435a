"""Tests for omnibuilder preview."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from omnibuilder.cli.main import app

runner = CliRunner()


def _preview(ws: Path, *args: str):
    return runner.invoke(app, ["preview", "--once", "--dir", str(ws), *args])


def test_preview_web_project_runs(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<body><p>hi</p></body>", encoding="utf-8")
    result = _preview(tmp_path)
    assert result.exit_code == 0, result.output
    assert "Preview running at" in result.output
    assert "http://127.0.0.1:" in result.output


def test_preview_non_web_project_is_informational(tmp_path: Path) -> None:
    (tmp_path / "main.py").write_text("print(1)", encoding="utf-8")
    result = _preview(tmp_path)
    assert result.exit_code == 0, result.output
    assert "Not a web project" in result.output


def test_preview_empty_workspace_fails(tmp_path: Path) -> None:
    result = _preview(tmp_path)
    assert result.exit_code == 1
    assert "no project files" in result.output


def test_preview_construction_failure_exits_1(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<p>x</p>", encoding="utf-8")

    def broken_factory(host: str):
        def factory(generation, channel):
            raise OSError("Address already in use")

        return factory

    with patch("omnibuilder.cli.preview.http_context_factory", broken_factory):
        result = _preview(tmp_path)
    assert result.exit_code == 1
    assert "Address already in use" in result.output


def test_preview_rejects_non_loopback_host(tmp_path: Path) -> None:
    (tmp_path / "index.html").write_text("<p>x</p>", encoding="utf-8")
    (tmp_path / "omnibuilder.yaml").write_text("preview:\n  host: 0.0.0.0\n", encoding="utf-8")
    result = _preview(tmp_path)
    assert result.exit_code == 1
    assert "loopback" in result.output
