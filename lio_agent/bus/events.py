"""Inbound events and outbound platform messages."""

from dataclasses import dataclass, field
from typing import Any, Union

from lio_agent.store.models import Content


@dataclass
class InboundMessage:
    """A user message received from a chat channel."""

    channel: str  # line, cli
    sender_id: str  # Platform user identifier
    chat_id: str
    content: Content
    message_id: str = ""
    reply_token: str | None = None
    quote_token: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def session_key(self) -> str:
        """Unique key for the turn, used to key idempotent tool effects."""
        return f"{self.channel}:{self.chat_id}:{self.message_id or self.reply_token or ''}"


@dataclass
class TextMessage:
    text: str
    quote_token: str | None = None

    def to_line(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": "text", "text": self.text}
        if self.quote_token:
            payload["quoteToken"] = self.quote_token
        return payload


@dataclass
class AudioMessage:
    original_content_url: str
    duration: int  # Milliseconds

    def to_line(self) -> dict[str, Any]:
        return {
            "type": "audio",
            "originalContentUrl": self.original_content_url,
            "duration": self.duration,
        }


@dataclass
class ImageMessage:
    original_content_url: str
    preview_image_url: str

    def to_line(self) -> dict[str, Any]:
        return {
            "type": "image",
            "originalContentUrl": self.original_content_url,
            "previewImageUrl": self.preview_image_url,
        }


OutboundMessage = Union[TextMessage, AudioMessage, ImageMessage]
