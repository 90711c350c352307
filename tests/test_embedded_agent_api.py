import asyncio
from typing import Any

import pytest

from lio_agent.agent import Agent
from lio_agent.config.schema import Config
from lio_agent.providers.base import LLMProvider, LLMResponse


class DummyProvider(LLMProvider):
    async def chat(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7, **options):
        return LLMResponse(content="embedded-ok")

    async def structured(self, messages, schema, name="result", model=None, temperature=0.0):
        return {"thoughts": ["直接回覆"]}

    def get_default_model(self) -> str:
        return "dummy-model"


class _Speech:
    async def synthesize(self, text: str, voice: Any = None):
        return None


class _Images:
    async def generate(self, prompt: str):
        return None


class _Uploader:
    async def upload_file(self, content: bytes, name: str) -> str:
        return f"https://cdn.example.com/{name}"


def _build_agent(tmp_path, monkeypatch) -> Agent:
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "data"))
    return Agent(
        config=Config(),
        workspace=tmp_path / "ws",
        provider=DummyProvider(),
        speech=_Speech(),
        images=_Images(),
        uploader=_Uploader(),
    )


def test_embedded_agent_ask_sync(tmp_path, monkeypatch):
    agent = _build_agent(tmp_path, monkeypatch)

    assert agent.ask_sync("hello from embed") == "embedded-ok"
    assert (tmp_path / "ws" / "state" / "store" / "messages.json").exists()


def test_embedded_agent_close_blocks_future_calls(tmp_path, monkeypatch):
    agent = _build_agent(tmp_path, monkeypatch)
    agent.close()

    with pytest.raises(RuntimeError, match="Agent is closed"):
        agent.ask_sync("hello")


def test_embedded_agent_async_context_manager(tmp_path, monkeypatch):
    async def run() -> str:
        async with _build_agent(tmp_path, monkeypatch) as agent:
            return await agent.ask("hi", sender_id="embed-2")

    assert asyncio.run(run()) == "embedded-ok"


def test_ask_sync_refuses_running_loop(tmp_path, monkeypatch):
    agent = _build_agent(tmp_path, monkeypatch)

    async def run() -> None:
        with pytest.raises(RuntimeError, match="active event loop"):
            agent.ask_sync("hi")

    asyncio.run(run())


def test_agent_without_api_key_fails_fast(tmp_path, monkeypatch):
    monkeypatch.setenv("LIO_DATA_DIR", str(tmp_path / "data"))
    for key in ("GEMINI_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(key, raising=False)

    with pytest.raises(ValueError, match="No API key configured"):
        Agent(config=Config(), workspace=tmp_path / "ws")
