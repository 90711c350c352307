"""Reply assembly and single-use dispatch."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from lio_agent.bus.events import OutboundMessage, TextMessage

MAX_MESSAGES_PER_REPLY = 5
CAP_WARNING = "⚠️ Sorry, I can't send more than 5 messages at once. Please wait a moment."

SendFn = Callable[[str, list[dict[str, Any]]], Awaitable[None]]


class ReplyHandleUsedError(RuntimeError):
    """Raised when a reply token is used a second time."""


class ReplyHandle:
    """A reply token that can carry exactly one outbound batch."""

    def __init__(self, token: str, send: SendFn):
        self.token = token
        self._send = send
        self._used = False

    @property
    def used(self) -> bool:
        return self._used

    async def send(self, messages: list[OutboundMessage]) -> None:
        if self._used:
            raise ReplyHandleUsedError(f"reply token {self.token[:8]}... already used")
        self._used = True
        await self._send(self.token, [m.to_line() for m in messages])


@dataclass
class DispatchResult:
    status: str  # sent, capped, empty, failed
    messages: list[OutboundMessage] = field(default_factory=list)
    error: str = ""

    @property
    def delivered(self) -> bool:
        return self.status in {"sent", "capped"}


class ReplyAssembler:
    """Orders reply messages (text, audio, images) and sends them in one call."""

    def __init__(self, max_messages: int = MAX_MESSAGES_PER_REPLY, cap_warning: str = CAP_WARNING):
        self.max_messages = max_messages
        self.cap_warning = cap_warning

    def assemble(
        self,
        text: str,
        audio: OutboundMessage | None = None,
        images: list[OutboundMessage] | None = None,
        quote_token: str | None = None,
    ) -> list[OutboundMessage]:
        batch: list[OutboundMessage] = []
        if text.strip():
            batch.append(TextMessage(text=text, quote_token=quote_token))
        if audio is not None:
            batch.append(audio)
        batch.extend(images or [])
        return batch

    async def dispatch(self, handle: ReplyHandle, batch: list[OutboundMessage]) -> DispatchResult:
        """
        Send `batch` through `handle`.

        An empty batch makes no call. A batch over the cap is replaced by a
        single warning message. Platform errors are logged, never raised.
        """
        if not batch:
            logger.info("Reply batch is empty; nothing to send")
            return DispatchResult(status="empty")

        status = "sent"
        if len(batch) > self.max_messages:
            logger.warning(
                f"Reply batch has {len(batch)} messages (cap {self.max_messages}); sending warning instead"
            )
            batch = [TextMessage(text=self.cap_warning)]
            status = "capped"

        try:
            await handle.send(batch)
        except Exception as e:
            logger.error(f"Reply dispatch failed: {e}")
            return DispatchResult(status="failed", messages=batch, error=str(e))
        return DispatchResult(status=status, messages=batch)
