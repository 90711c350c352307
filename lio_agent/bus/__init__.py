"""Message bus module for decoupled channel-agent communication."""

from lio_agent.bus.events import (
    AudioMessage,
    ImageMessage,
    InboundMessage,
    OutboundMessage,
    TextMessage,
)
from lio_agent.bus.queue import MessageBus

__all__ = [
    "MessageBus",
    "InboundMessage",
    "OutboundMessage",
    "TextMessage",
    "AudioMessage",
    "ImageMessage",
]
