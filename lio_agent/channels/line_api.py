"""LINE Messaging API client."""

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger


class LineApiError(RuntimeError):
    """Raised when the Messaging API rejects a call."""

    def __init__(self, status: int, detail: str):
        super().__init__(f"LINE API error (HTTP {status}): {detail}")
        self.status = status
        self.detail = detail


@dataclass
class LineProfile:
    user_id: str
    display_name: str = ""
    picture_url: str = ""
    status_message: str = ""


@dataclass
class LineContent:
    data: bytes
    content_type: str = "application/octet-stream"


class LineMessagingClient:
    """Thin async wrapper over the Messaging API endpoints the assistant uses."""

    def __init__(
        self,
        channel_access_token: str,
        api_base: str = "https://api.line.me",
        data_api_base: str = "https://api-data.line.me",
        timeout: float = 30.0,
    ):
        self.channel_access_token = channel_access_token
        self.api_base = api_base.rstrip("/")
        self.data_api_base = data_api_base.rstrip("/")
        self.timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.channel_access_token}"}

    async def _post(self, path: str, payload: dict[str, Any]) -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.api_base}{path}",
                headers=self._headers,
                json=payload,
                timeout=self.timeout,
            )
        if response.status_code >= 300:
            raise LineApiError(response.status_code, response.text[:500])

    async def reply_messages(self, reply_token: str, messages: list[dict[str, Any]]) -> None:
        await self._post("/v2/bot/message/reply", {"replyToken": reply_token, "messages": messages})

    async def push_messages(self, to: str, messages: list[dict[str, Any]]) -> None:
        await self._post("/v2/bot/message/push", {"to": to, "messages": messages})

    async def show_loading_animation(self, chat_id: str, seconds: int = 20) -> None:
        """Best effort; failures are logged."""
        seconds = min(60, max(5, seconds - seconds % 5))
        try:
            await self._post("/v2/bot/chat/loading/start", {"chatId": chat_id, "loadingSeconds": seconds})
        except Exception as e:
            logger.debug(f"Loading animation failed for {chat_id}: {e}")

    async def get_profile(self, user_id: str) -> LineProfile:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_base}/v2/bot/profile/{user_id}",
                headers=self._headers,
                timeout=self.timeout,
            )
        if response.status_code >= 300:
            raise LineApiError(response.status_code, response.text[:500])
        data = response.json()
        return LineProfile(
            user_id=str(data.get("userId") or user_id),
            display_name=str(data.get("displayName") or ""),
            picture_url=str(data.get("pictureUrl") or ""),
            status_message=str(data.get("statusMessage") or ""),
        )

    async def get_message_content(self, message_id: str) -> LineContent:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.data_api_base}/v2/bot/message/{message_id}/content",
                headers=self._headers,
                timeout=self.timeout,
            )
        if response.status_code >= 300:
            raise LineApiError(response.status_code, response.text[:500])
        return LineContent(
            data=response.content,
            content_type=response.headers.get("content-type", "application/octet-stream"),
        )
