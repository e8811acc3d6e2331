"""OpenAI JSON client and canvas AI service tests — sanitizer, retries, schema validation.

No network: ``httpx.AsyncClient`` is replaced with a scripted fake.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from rocketmap.services.canvas_ai import CanvasAIError, extract_assumptions, score_canvas_viability
from rocketmap.services.openai_client import call_openai_json, sanitize_json

MESSAGES = [{"role": "user", "content": "hi"}]


def _completion(content):
    return {"choices": [{"message": {"content": content}}], "usage": {"prompt_tokens": 3, "completion_tokens": 5}}


def _fake_client(responses):
    """AsyncClient stand-in returning ``responses`` in order; records every call."""
    calls = []

    class FakeAsyncClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def post(self, url, headers=None, json=None):
            calls.append(json)
            item = responses[len(calls) - 1]
            if isinstance(item, Exception):
                raise item
            return item

    return FakeAsyncClient, calls


@pytest.fixture(autouse=True)
def openai_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-test")


class TestSanitizeJson:
    def test_fenced(self):
        assert json.loads(sanitize_json('```json\n{"a": 1}\n```')) == {"a": 1}

    def test_prose_and_trailing_comma(self):
        assert json.loads(sanitize_json('Here you go: {"a": [1, 2,],} thanks')) == {"a": [1, 2]}

    def test_no_object(self):
        with pytest.raises(ValueError):
            sanitize_json("no json here")


class TestCallOpenAIJson:
    def test_success_enforces_json_format(self):
        fake, calls = _fake_client([httpx.Response(200, json=_completion('{"ok": true}'))])
        with patch("rocketmap.services.openai_client.httpx.AsyncClient", fake):
            result = asyncio.run(call_openai_json(messages=MESSAGES, temperature=0.3))

        assert result == {"ok": True}
        assert calls[0]["model"] == "gpt-test"
        assert calls[0]["temperature"] == 0.3
        assert calls[0]["response_format"] == {"type": "json_object"}

    def test_retries_once_by_default(self):
        fake, calls = _fake_client([
            httpx.Response(500, text="boom"),
            httpx.Response(200, json=_completion('{"ok": 1}')),
        ])
        with patch("rocketmap.services.openai_client.httpx.AsyncClient", fake):
            result = asyncio.run(call_openai_json(messages=MESSAGES))

        assert result == {"ok": 1}
        assert len(calls) == 2

    def test_zero_retries_makes_one_call(self):
        fake, calls = _fake_client([
            httpx.Response(200, json=_completion("not json at all")),
            httpx.Response(200, json=_completion('{"ok": 1}')),
        ])
        with patch("rocketmap.services.openai_client.httpx.AsyncClient", fake):
            result = asyncio.run(call_openai_json(messages=MESSAGES, max_retries=0))

        assert result is None
        assert len(calls) == 1

    def test_transport_error_returns_none(self):
        fake, calls = _fake_client([httpx.ConnectError("refused"), httpx.Response(200, json=_completion("{}"))])
        with patch("rocketmap.services.openai_client.httpx.AsyncClient", fake):
            assert asyncio.run(call_openai_json(messages=MESSAGES)) is None
        assert len(calls) == 1

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(EnvironmentError):
            asyncio.run(call_openai_json(messages=MESSAGES))


class TestCanvasAI:
    def test_viability_scorer_uses_single_attempt(self):
        mocked = AsyncMock(return_value={"score": 50})
        with patch("rocketmap.services.canvas_ai.call_openai_json", new=mocked):
            assert asyncio.run(score_canvas_viability({"value_prop": "x"})) == {"score": 50}

        kwargs = mocked.await_args.kwargs
        assert kwargs["max_retries"] == 0
        assert kwargs["temperature"] == 0.3

    def test_extraction_validates_schema(self):
        with patch(
            "rocketmap.services.canvas_ai.call_openai_json",
            new=AsyncMock(return_value={"reasoning": "r", "assumptions": [{"statement": "s", "severity_score": 99}]}),
        ):
            with pytest.raises(CanvasAIError):
                asyncio.run(extract_assumptions({"value_prop": "x"}))

    def test_extraction_none_is_error(self):
        with patch("rocketmap.services.canvas_ai.call_openai_json", new=AsyncMock(return_value=None)):
            with pytest.raises(CanvasAIError):
                asyncio.run(extract_assumptions({"value_prop": "x"}))

    def test_extraction_success(self):
        payload = {
            "reasoning": "Pricing is the crux.",
            "assumptions": [
                {"statement": "SMBs pay $49", "category": "market", "severity_score": 8, "block_types": ["revenue_streams"]}
            ],
        }
        with patch("rocketmap.services.canvas_ai.call_openai_json", new=AsyncMock(return_value=payload)):
            extraction = asyncio.run(extract_assumptions({"value_prop": "x"}))
        assert extraction.assumptions[0].severity_score == 8
