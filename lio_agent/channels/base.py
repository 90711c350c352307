"""Base channel interface for chat platforms."""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from lio_agent.agent.reply import ReplyHandle
from lio_agent.bus.events import InboundMessage
from lio_agent.bus.queue import MessageBus
from lio_agent.store.models import Content


class BaseChannel(ABC):
    """
    Abstract base class for chat channel implementations.

    A channel turns platform events into InboundMessage objects on the bus
    and hands out single-use reply handles for answering them.
    """

    name: str = "base"

    def __init__(self, config: Any, bus: MessageBus):
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """Start listening for platform events. Long-running."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel and clean up resources."""

    @abstractmethod
    async def reply(self, reply_token: str, messages: list[dict[str, Any]]) -> None:
        """Answer an event through its reply token."""

    @abstractmethod
    async def push(self, to: str, messages: list[dict[str, Any]]) -> None:
        """Send messages to a user outside of a reply."""

    async def get_display_name(self, sender_id: str) -> str:
        return ""

    def reply_handle(self, reply_token: str) -> ReplyHandle:
        return ReplyHandle(reply_token, self.reply)

    def is_allowed(self, sender_id: str) -> bool:
        allow_list = getattr(self.config, "allow_from", [])
        if not allow_list:
            return True
        return str(sender_id).strip() in {str(a).strip() for a in allow_list}

    async def _handle_message(
        self,
        sender_id: str,
        chat_id: str,
        content: Content,
        message_id: str = "",
        reply_token: str | None = None,
        quote_token: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if not self.is_allowed(sender_id):
            logger.warning(
                f"Access denied for sender {sender_id} on channel {self.name}. "
                f"Add them to allowFrom list in config to grant access."
            )
            return

        msg = InboundMessage(
            channel=self.name,
            sender_id=str(sender_id),
            chat_id=str(chat_id),
            content=content,
            message_id=message_id,
            reply_token=reply_token,
            quote_token=quote_token,
            metadata=metadata or {},
        )
        await self.bus.publish_inbound(msg)

    @property
    def is_running(self) -> bool:
        return self._running
