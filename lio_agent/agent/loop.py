"""Agent loop: the gateway's consumer of inbound messages."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger

from lio_agent.agent.context import ContextBuilder
from lio_agent.agent.generator import ToolAugmentedGenerator
from lio_agent.agent.media import ImageProvider, MediaSynthesizer, SpeechProvider
from lio_agent.agent.persistence import PersistenceWriter
from lio_agent.agent.pipeline import ERROR_REPLY, ReplyPipeline, TurnResult
from lio_agent.agent.planner import Planner
from lio_agent.agent.reply import ReplyAssembler, ReplyHandle
from lio_agent.agent.retry import RetryController, RetryPolicy
from lio_agent.agent.tools import build_tool_registry
from lio_agent.agent.tools.registry import ToolRegistry
from lio_agent.bus.events import InboundMessage, TextMessage
from lio_agent.bus.queue import MessageBus
from lio_agent.config.schema import Config
from lio_agent.providers.base import LLMProvider
from lio_agent.providers.factory import build_image_provider, build_speech_provider
from lio_agent.storage.uploader import BlobUploader, PresignedUploader
from lio_agent.store.json_store import WorkspaceStore
from lio_agent.store.models import Content, User, new_id

if TYPE_CHECKING:
    from lio_agent.channels.base import BaseChannel


def outbound_text(messages: list[dict[str, Any]]) -> str:
    """Readable view of a LINE message batch for terminals and embedding."""
    lines: list[str] = []
    for message in messages:
        kind = message.get("type")
        if kind == "text":
            lines.append(str(message.get("text", "")))
        elif kind == "audio":
            lines.append(f"[voice] {message.get('originalContentUrl', '')}")
        elif kind == "image":
            lines.append(f"[image] {message.get('originalContentUrl', '')}")
    return "\n\n".join(lines)


class AgentLoop:
    """
    The agent loop is the core processing engine.

    It:
    1. Receives messages from the bus
    2. Resolves (or registers) the sender
    3. Runs the reply pipeline in its own task, so a slow turn never blocks others
    4. Falls back to a short apology if a turn crashes before replying
    """

    def __init__(
        self,
        bus: MessageBus,
        provider: LLMProvider,
        config: Config | None = None,
        *,
        store: Any | None = None,
        speech: SpeechProvider | None = None,
        images: ImageProvider | None = None,
        uploader: BlobUploader | None = None,
        channels: dict[str, BaseChannel] | None = None,
    ):
        self.bus = bus
        self.provider = provider
        self.config = config or Config()
        self.store = store or WorkspaceStore(self.config.workspace_path)
        self.channels: dict[str, BaseChannel] = dict(channels or {})

        defaults = self.config.agents.defaults
        self.model = defaults.model or provider.get_default_model()
        self.context = ContextBuilder(
            timezone=defaults.timezone,
            default_language=defaults.default_language,
        )
        self.uploader = uploader or PresignedUploader(
            self.config.storage.presign_url,
            api_key=self.config.storage.api_key,
            timeout=self.config.storage.timeout_seconds,
        )
        self.synthesizer = MediaSynthesizer(
            speech=speech or build_speech_provider(self.config),
            images=images or build_image_provider(self.config),
            uploader=self.uploader,
        )
        self.pipeline = ReplyPipeline(
            context=self.context,
            planner=Planner(provider, self.context, model=defaults.planner_model or self.model),
            generator=ToolAugmentedGenerator(
                provider,
                self.context,
                model=self.model,
                max_steps=defaults.max_steps,
                max_tokens=defaults.max_tokens,
                temperature=defaults.temperature,
                presence_penalty=defaults.presence_penalty,
                frequency_penalty=defaults.frequency_penalty,
            ),
            synthesizer=self.synthesizer,
            persistence=PersistenceWriter(self.store),
            messages=self.store,
            tasks=self.store,
            tool_factory=self._build_tools,
            retry=RetryController(RetryPolicy(max_attempts=defaults.max_attempts)),
            assembler=ReplyAssembler(max_messages=self.config.line.max_messages_per_reply),
            history_limit=defaults.history_limit,
        )

        self._running = False
        self._tasks: set[asyncio.Task[None]] = set()

    def _build_tools(self, user: User, turn_key: str) -> ToolRegistry:
        tools_cfg = self.config.tools
        return build_tool_registry(
            user_id=user.id,
            tasks=self.store,
            jobs=self.store,
            memories=self.store,
            feedback=self.store,
            provider=self.provider,
            search_model=tools_cfg.web.search_model or self.model,
            file_parse_url=tools_cfg.file.parse_url,
            web_timeout=tools_cfg.web.timeout_seconds,
            web_max_chars=tools_cfg.web.max_chars,
            file_timeout=tools_cfg.file.timeout_seconds,
            turn_key=turn_key,
        )

    def register_channel(self, channel: BaseChannel) -> None:
        self.channels[channel.name] = channel

    async def run(self) -> None:
        """Run the agent loop, processing messages from the bus."""
        self._running = True
        logger.info("Agent loop started")

        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            self._spawn(msg)

    def _spawn(self, msg: InboundMessage) -> None:
        task = asyncio.create_task(self._process_inbound(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def stop(self) -> None:
        """Stop the agent loop."""
        self._running = False
        logger.info("Agent loop stopping")

    async def shutdown(self) -> None:
        """Stop consuming and wait for in-flight turns."""
        self.stop()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def resolve_user(self, sender_id: str, channel: BaseChannel | None = None) -> User:
        """Fetch the sender's record, creating it on first contact."""
        user = await self.store.get_user_by_line_id(sender_id)
        if user is not None:
            return user
        display_name = await channel.get_display_name(sender_id) if channel else ""
        user = User(
            line_user_id=sender_id,
            display_name=display_name or sender_id,
            voice=self.config.media.default_voice,
        )
        logger.info(f"Registering new user {sender_id} ({user.display_name})")
        return await self.store.create_user(user)

    async def _process_inbound(self, msg: InboundMessage) -> None:
        channel = self.channels.get(msg.channel)
        if channel is None or not msg.reply_token:
            logger.warning(f"No reply route for message from {msg.channel}:{msg.sender_id}")
            return
        handle = channel.reply_handle(msg.reply_token)
        try:
            await self.process_message(msg, handle, channel)
        except Exception as e:
            logger.error(f"Error processing message from {msg.sender_id}: {e}")
            if not handle.used:
                try:
                    await handle.send([TextMessage(text=ERROR_REPLY)])
                except Exception as send_error:
                    logger.error(f"Error reply failed for {msg.sender_id}: {send_error}")

    async def process_message(
        self,
        msg: InboundMessage,
        handle: ReplyHandle,
        channel: BaseChannel | None = None,
    ) -> TurnResult:
        """Run one turn for `msg`, answering through `handle`."""
        user = await self.resolve_user(msg.sender_id, channel)
        logger.info(f"Processing message from {msg.channel}:{msg.sender_id}")
        return await self.pipeline.run(user, msg, handle)

    async def process_direct(
        self,
        content: Content,
        sender_id: str = "cli-user",
        channel: str = "cli",
        chat_id: str = "direct",
        message_id: str = "",
    ) -> str:
        """
        Process a message directly (for CLI or embedded usage).

        The reply batch is collected instead of sent to a platform and
        returned as text.
        """
        collected: list[dict[str, Any]] = []

        async def _collect(token: str, messages: list[dict[str, Any]]) -> None:
            collected.extend(messages)

        msg = InboundMessage(
            channel=channel,
            sender_id=sender_id,
            chat_id=chat_id,
            content=content,
            message_id=message_id or new_id(),
            reply_token=f"{channel}-{chat_id}",
        )
        await self.process_message(msg, ReplyHandle(msg.reply_token or "direct", _collect))
        return outbound_text(collected)
