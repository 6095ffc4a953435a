"""Tests for the LiteLLM streaming wrapper (litellm calls are mocked)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from omnibuilder.generate.llm_client import provider_of, stream_completion, validate_api_key


def _chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


# ------------------------------------------------------------------
# Provider + API key
# ------------------------------------------------------------------

@pytest.mark.parametrize(
    "model, provider",
    [
        ("gemini/gemini-2.5-pro", "gemini"),
        ("Anthropic/claude", "anthropic"),
        ("gpt-4o", "openai"),
    ],
)
def test_provider_of(model, provider):
    assert provider_of(model) == provider


def test_validate_api_key_missing(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="GEMINI_API_KEY"):
        validate_api_key("gemini/gemini-2.5-pro")


def test_validate_api_key_present(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    validate_api_key("openai/gpt-4o")


def test_validate_api_key_local_provider_needs_none(monkeypatch):
    monkeypatch.delenv("OLLAMA_API_KEY", raising=False)
    validate_api_key("ollama/llama3")


def test_validate_api_key_unknown_provider_uses_convention(monkeypatch):
    monkeypatch.delenv("ACME_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="ACME_API_KEY"):
        validate_api_key("acme/model-1")


# ------------------------------------------------------------------
# Streaming
# ------------------------------------------------------------------

def test_stream_completion_yields_non_empty_deltas():
    stream = [_chunk("Hel"), _chunk(None), SimpleNamespace(choices=[]), _chunk("lo"), _chunk("")]
    with patch("omnibuilder.generate.llm_client.litellm.completion", return_value=iter(stream)) as mock:
        chunks = list(stream_completion("gemini/x", [{"role": "user", "content": "hi"}], max_tokens=10))

    assert chunks == ["Hel", "lo"]
    kwargs = mock.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["model"] == "gemini/x"
    assert kwargs["max_tokens"] == 10


def test_stream_completion_propagates_errors():
    with patch(
        "omnibuilder.generate.llm_client.litellm.completion", side_effect=RuntimeError("down")
    ):
        with pytest.raises(RuntimeError, match="down"):
            list(stream_completion("gemini/x", []))
