"""LINE channel: webhook events in, reply and push messages out."""

import asyncio
import mimetypes
from typing import Any

from loguru import logger

from lio_agent.agent.pipeline import ERROR_REPLY
from lio_agent.bus.queue import MessageBus
from lio_agent.channels.base import BaseChannel
from lio_agent.channels.line_api import LineMessagingClient
from lio_agent.channels.webhook import LineWebhookServer
from lio_agent.config.schema import GatewayConfig, LineConfig
from lio_agent.storage.uploader import BlobUploader
from lio_agent.store.models import Content, FilePart, ImagePart, TextPart

STICKER_URL = "https://stickershop.line-scdn.net/stickershop/v1/sticker/{sticker_id}/ANDROID/sticker.png"
UNSUPPORTED_REPLY = "哎呀！🚨 這個訊息好像超出我的理解範圍！請試試其他類型的訊息，希望下次能幫上忙！。"
FILE_NOTES = {
    "file": "(This is a file, please respond to it but DO NOT EXPOSE YOUR THINKING STEPS)",
    "video": "(This is a video file, please respond to it but DO NOT EXPOSE YOUR THINKING STEPS)",
    "audio": "(This is an audio file, please respond to it but DO NOT EXPOSE YOUR THINKING STEPS)",
}


class UnsupportedMessageError(ValueError):
    """Raised for message types the assistant cannot read."""


class LineChannel(BaseChannel):
    """
    LINE Messaging API channel.

    Webhook events are verified and acknowledged immediately; each message
    event is converted in its own task and published to the bus.
    """

    name = "line"

    def __init__(
        self,
        config: LineConfig,
        bus: MessageBus,
        client: LineMessagingClient,
        uploader: BlobUploader,
        gateway: GatewayConfig | None = None,
    ):
        super().__init__(config, bus)
        self.client = client
        self.uploader = uploader
        gateway = gateway or GatewayConfig()
        self.server = LineWebhookServer(
            channel_secret=config.channel_secret,
            on_events=self.schedule_events,
            on_push=self.push,
            host=gateway.host,
            port=gateway.port,
            callback_path=gateway.callback_path,
            push_token=gateway.push_token,
        )
        self._tasks: set[asyncio.Task[None]] = set()
        self._stop_event = asyncio.Event()

    async def start(self) -> None:
        await self.server.start()
        self._running = True
        self._stop_event.clear()
        logger.info(f"LINE webhook listening on {self.server.host}:{self.server.bound_port}")
        await self._stop_event.wait()

    async def stop(self) -> None:
        self._running = False
        self._stop_event.set()
        await self.server.stop()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def reply(self, reply_token: str, messages: list[dict[str, Any]]) -> None:
        await self.client.reply_messages(reply_token, messages)

    async def push(self, to: str, messages: list[dict[str, Any]]) -> None:
        await self.client.push_messages(to, messages)

    async def get_display_name(self, sender_id: str) -> str:
        try:
            profile = await self.client.get_profile(sender_id)
        except Exception as e:
            logger.warning(f"Profile lookup failed for {sender_id}: {e}")
            return ""
        return profile.display_name

    def schedule_events(self, events: list[dict[str, Any]]) -> None:
        """Start one task per message event without waiting for it."""
        for event in events:
            if event.get("type") != "message":
                logger.debug(f"Ignoring LINE event type {event.get('type')}")
                continue
            task = asyncio.create_task(self.handle_event(event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def handle_event(self, event: dict[str, Any]) -> None:
        source = event.get("source") or {}
        user_id = str(source.get("userId") or "")
        reply_token = event.get("replyToken")
        message = event.get("message") or {}
        if not user_id:
            logger.error("LINE message event without a source user")
            return
        if not reply_token:
            logger.debug(f"LINE message from {user_id} has no reply token; skipped")
            return
        if not self.is_allowed(user_id):
            logger.warning(f"Access denied for sender {user_id} on channel {self.name}.")
            return

        await self.client.show_loading_animation(user_id, self.config.loading_seconds)

        try:
            content = await self.convert_message(message)
        except UnsupportedMessageError:
            await self._reply_text(reply_token, UNSUPPORTED_REPLY)
            return
        except Exception as e:
            logger.error(f"Failed to read LINE message {message.get('id')}: {e}")
            await self._reply_text(reply_token, ERROR_REPLY)
            return

        await self._handle_message(
            sender_id=user_id,
            chat_id=user_id,
            content=content,
            message_id=str(message.get("id") or event.get("webhookEventId") or ""),
            reply_token=reply_token,
            quote_token=message.get("quoteToken"),
            metadata={"message_type": message.get("type"), "timestamp": event.get("timestamp")},
        )

    async def convert_message(self, message: dict[str, Any]) -> Content:
        """Turn a LINE message object into conversation content."""
        kind = message.get("type")
        if kind == "text":
            return [TextPart(text=str(message.get("text") or ""))]
        if kind == "sticker":
            url = STICKER_URL.format(sticker_id=message.get("stickerId", ""))
            return [ImagePart(url=url)]
        if kind == "image":
            url, _ = await self._store_content(str(message.get("id") or ""))
            return [ImagePart(url=url)]
        if kind in FILE_NOTES:
            url, mime_type = await self._store_content(
                str(message.get("id") or ""), file_name=message.get("fileName")
            )
            return [TextPart(text=FILE_NOTES[kind]), FilePart(url=url, mime_type=mime_type)]
        raise UnsupportedMessageError(kind)

    async def _store_content(self, message_id: str, file_name: str | None = None) -> tuple[str, str]:
        content = await self.client.get_message_content(message_id)
        mime_type = content.content_type.split(";", 1)[0].strip() or "application/octet-stream"
        name = message_id
        suffix = ""
        if file_name and "." in file_name:
            suffix = "." + file_name.rsplit(".", 1)[-1]
        else:
            suffix = mimetypes.guess_extension(mime_type) or ""
        url = await self.uploader.upload_file(content.data, f"{name}{suffix}")
        return url, mime_type

    async def _reply_text(self, reply_token: str, text: str) -> None:
        try:
            await self.client.reply_messages(reply_token, [{"type": "text", "text": text}])
        except Exception as e:
            logger.error(f"Error replying to LINE event: {e}")
