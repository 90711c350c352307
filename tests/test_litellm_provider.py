"""Tests for the LiteLLM-backed chat provider."""

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from lio_agent.providers.base import StructuredOutputError
from lio_agent.providers.litellm_provider import LiteLLMProvider


def _response(content: str | None = None, tool_calls: list[Any] | None = None, finish_reason: str = "stop"):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    usage = SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)], usage=usage)


def _tool_call(name: str, arguments: str, call_id: str = "call-1"):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def test_resolve_model_prefixes():
    provider = LiteLLMProvider(default_model="gemini-2.0-flash-001")

    assert provider._resolve_model("gemini-2.0-flash-001") == "gemini/gemini-2.0-flash-001"
    assert provider._resolve_model("claude-sonnet-4-5") == "anthropic/claude-sonnet-4-5"
    assert provider._resolve_model("gemini/gemini-2.0-flash-001") == "gemini/gemini-2.0-flash-001"
    assert provider._resolve_model("gpt-4o") == "gpt-4o"


def test_resolve_model_openrouter_gateway(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    provider = LiteLLMProvider(api_key="sk-or", provider_name="openrouter")

    assert provider._resolve_model("anthropic/claude-sonnet-4-5") == "openrouter/anthropic/claude-sonnet-4-5"
    assert provider._resolve_model("openrouter/x") == "openrouter/x"


def test_parse_response_keeps_unparseable_arguments():
    provider = LiteLLMProvider()
    response = _response(
        tool_calls=[
            _tool_call("scheduleJob", '{"name": "開會"}', "c1"),
            _tool_call("addTask", '{"title": "x",', "c2"),
            _tool_call("getTasks", "", "c3"),
        ],
        finish_reason="tool_calls",
    )

    parsed = provider._parse_response(response)

    assert [c.arguments for c in parsed.tool_calls] == [{"name": "開會"}, {}, {}]
    assert parsed.tool_calls[1].raw_arguments == '{"title": "x",'
    assert parsed.tool_calls[0].raw_arguments == ""
    assert parsed.finish_reason == "tool_calls"
    assert parsed.usage["total_tokens"] == 15


def test_chat_passes_sampling_options(monkeypatch):
    captured: dict[str, Any] = {}

    async def _fake(**kwargs):
        captured.update(kwargs)
        return _response("嗨")

    monkeypatch.setattr("lio_agent.providers.litellm_provider.acompletion", _fake)
    provider = LiteLLMProvider(api_key="k", default_model="gemini/gemini-2.0-flash-001")

    result = asyncio.run(
        provider.chat(
            [{"role": "user", "content": "hi"}],
            tools=[{"type": "function", "function": {"name": "getTasks"}}],
            presence_penalty=0.5,
            frequency_penalty=0.1,
        )
    )

    assert result.content == "嗨"
    assert captured["model"] == "gemini/gemini-2.0-flash-001"
    assert captured["tool_choice"] == "auto"
    assert captured["presence_penalty"] == 0.5
    assert captured["frequency_penalty"] == 0.1


def test_chat_failure_is_error_response(monkeypatch):
    async def _boom(**kwargs):
        raise RuntimeError("quota exceeded")

    monkeypatch.setattr("lio_agent.providers.litellm_provider.acompletion", _boom)

    result = asyncio.run(LiteLLMProvider().chat([{"role": "user", "content": "hi"}]))

    assert result.finish_reason == "error"
    assert "quota exceeded" in result.content


def test_structured_strips_code_fence(monkeypatch):
    captured: dict[str, Any] = {}

    async def _fake(**kwargs):
        captured.update(kwargs)
        return _response('```json\n{"thoughts": ["a", "b"]}\n```')

    monkeypatch.setattr("lio_agent.providers.litellm_provider.acompletion", _fake)

    data = asyncio.run(
        LiteLLMProvider().structured([{"role": "user", "content": "x"}], schema={"type": "object"}, name="plan")
    )

    assert data == {"thoughts": ["a", "b"]}
    assert captured["response_format"]["json_schema"]["name"] == "plan"
    assert captured["temperature"] == 0.0


@pytest.mark.parametrize("content", ["not json", "[1, 2]"])
def test_structured_rejects_non_objects(monkeypatch, content):
    async def _fake(**kwargs):
        return _response(content)

    monkeypatch.setattr("lio_agent.providers.litellm_provider.acompletion", _fake)

    with pytest.raises(StructuredOutputError):
        asyncio.run(LiteLLMProvider().structured([], schema={}))
