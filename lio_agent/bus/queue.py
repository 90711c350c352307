"""Async message queue for decoupled channel-agent communication."""

import asyncio

from lio_agent.bus.events import InboundMessage


class MessageBus:
    """
    Async message bus that decouples the webhook from reply processing.

    The webhook publishes inbound messages and returns at once; the gateway
    consumes them and runs one pipeline task per message.
    """

    def __init__(self):
        self.inbound: asyncio.Queue[InboundMessage] = asyncio.Queue()

    async def publish_inbound(self, msg: InboundMessage) -> None:
        """Publish a message from a channel to the agent."""
        await self.inbound.put(msg)

    async def consume_inbound(self) -> InboundMessage:
        """Consume the next inbound message (blocks until available)."""
        return await self.inbound.get()

    @property
    def inbound_size(self) -> int:
        """Number of pending inbound messages."""
        return self.inbound.qsize()
