"""Embeddable Agent API for Python applications."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from lio_agent.agent.loop import AgentLoop
from lio_agent.bus.queue import MessageBus
from lio_agent.config.loader import load_config
from lio_agent.config.schema import Config
from lio_agent.providers.base import LLMProvider
from lio_agent.providers.factory import build_provider


class Agent:
    """Small embeddable wrapper around AgentLoop for direct use in Python."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        workspace: str | Path | None = None,
        provider: LLMProvider | None = None,
        **components: Any,
    ):
        self.config = config or load_config()
        if workspace is not None:
            self.config.agents.defaults.workspace = str(Path(workspace).expanduser())

        self.bus = MessageBus()
        self.loop = AgentLoop(
            bus=self.bus,
            provider=provider or build_provider(self.config),
            config=self.config,
            **components,
        )
        self._closed = False

    async def ask(self, content: str, *, sender_id: str = "embed-user", chat_id: str = "embed") -> str:
        """Process one direct message and return the reply as text."""
        self._ensure_open()
        return await self.loop.process_direct(
            content, sender_id=sender_id, channel="embed", chat_id=chat_id
        )

    def ask_sync(self, content: str, *, sender_id: str = "embed-user", chat_id: str = "embed") -> str:
        """Sync wrapper for ask()."""
        self._ensure_open()
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.ask(content, sender_id=sender_id, chat_id=chat_id))
        raise RuntimeError("ask_sync() cannot run inside an active event loop; use await ask(...).")

    async def _close_async(self) -> None:
        if self._closed:
            return
        await self.loop.shutdown()
        self._closed = True

    def close(self) -> None:
        """Close the embedded agent in sync contexts."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._close_async())
            return
        raise RuntimeError(
            "close() cannot run inside an active event loop; use await aclose() or async with Agent()."
        )

    async def aclose(self) -> None:
        await self._close_async()

    async def __aenter__(self) -> Agent:
        self._ensure_open()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self._close_async()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Agent is closed. Create a new Agent instance to continue.")
