"""Minimal HTTP server for the LINE webhook and push endpoints."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit

from loguru import logger

EventsCallback = Callable[[list[dict[str, Any]]], None]
PushCallback = Callable[[str, list[dict[str, Any]]], Awaitable[None]]

_MAX_BODY_BYTES = 1024 * 1024


def compute_signature(channel_secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 of the raw body, as sent in X-Line-Signature."""
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(channel_secret: str, body: bytes, signature: str) -> bool:
    if not channel_secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(channel_secret, body), signature.strip())


class LineWebhookServer:
    """Serve the webhook callback, health checks and push helpers over asyncio streams."""

    def __init__(
        self,
        *,
        channel_secret: str,
        on_events: EventsCallback,
        on_push: PushCallback | None = None,
        host: str = "0.0.0.0",
        port: int = 3000,
        callback_path: str = "/callback",
        push_token: str = "",
    ):
        self.channel_secret = channel_secret
        self.on_events = on_events
        self.on_push = on_push
        self.host = str(host or "0.0.0.0").strip()
        self.port = max(0, int(port))
        self.callback_path = callback_path if callback_path.startswith("/") else f"/{callback_path}"
        self.push_token = push_token
        self._server: asyncio.AbstractServer | None = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def bound_port(self) -> int:
        if not self._server or not self._server.sockets:
            return self.port
        return int(self._server.sockets[0].getsockname()[1])

    async def start(self) -> None:
        if self._server:
            return
        self._server = await asyncio.start_server(
            self._handle_client, host=self.host, port=self.port
        )

    async def stop(self) -> None:
        if not self._server:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None

    def _http_response(self, status: int, payload: dict[str, Any]) -> bytes:
        reason = {
            200: "OK",
            400: "Bad Request",
            401: "Unauthorized",
            404: "Not Found",
            405: "Method Not Allowed",
            413: "Payload Too Large",
            500: "Internal Server Error",
            502: "Bad Gateway",
        }.get(status, "OK")
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = [
            f"HTTP/1.1 {status} {reason}",
            "Content-Type: application/json; charset=utf-8",
            f"Content-Length: {len(data)}",
            "Connection: close",
            "",
            "",
        ]
        return "\r\n".join(headers).encode("utf-8") + data

    async def _read_request(
        self, reader: asyncio.StreamReader
    ) -> tuple[str, str, dict[str, str], bytes] | None:
        raw = await reader.read(65536)
        head, sep, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("utf-8", errors="ignore").split("\r\n")
        parts = lines[0].split() if lines and lines[0] else []
        if not sep or len(parts) < 2:
            return None

        headers: dict[str, str] = {}
        for line in lines[1:]:
            name, _, value = line.partition(":")
            if name:
                headers[name.strip().lower()] = value.strip()

        try:
            length = int(headers.get("content-length", "0") or 0)
        except ValueError:
            return None
        if length > _MAX_BODY_BYTES:
            raise OverflowError(length)
        while len(body) < length:
            chunk = await reader.read(length - len(body))
            if not chunk:
                break
            body += chunk
        return parts[0].upper(), urlsplit(parts[1]).path or "/", headers, body[:length]

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            try:
                request = await self._read_request(reader)
            except OverflowError:
                writer.write(self._http_response(413, {"error": "payload too large"}))
                await writer.drain()
                return
            if request is None:
                writer.write(self._http_response(400, {"error": "bad request"}))
                await writer.drain()
                return

            method, path, headers, body = request
            status, payload = await self._route(method, path, headers, body)
            writer.write(self._http_response(status, payload))
            await writer.drain()
        except Exception as e:
            logger.error(f"Webhook request failed: {e}")
            writer.write(self._http_response(500, {"error": "internal error"}))
            await writer.drain()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except Exception:
                pass

    async def _route(
        self, method: str, path: str, headers: dict[str, str], body: bytes
    ) -> tuple[int, dict[str, Any]]:
        if path in {"/", "/health"}:
            if method != "GET":
                return 405, {"error": "method not allowed"}
            return 200, {"status": "ok"}

        if path == self.callback_path:
            if method != "POST":
                return 405, {"error": "method not allowed"}
            return self._handle_callback(headers, body)

        if path in {"/send-text-message", "/send-image-message"}:
            if method != "POST":
                return 405, {"error": "method not allowed"}
            return await self._handle_push(path, headers, body)

        return 404, {"error": "not found"}

    def _handle_callback(self, headers: dict[str, str], body: bytes) -> tuple[int, dict[str, Any]]:
        if not verify_signature(self.channel_secret, body, headers.get("x-line-signature", "")):
            logger.warning("Rejected webhook call with invalid signature")
            return 401, {"error": "invalid signature"}
        try:
            payload = json.loads(body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return 400, {"error": "invalid json"}
        events = payload.get("events") if isinstance(payload, dict) else None
        if not isinstance(events, list):
            return 400, {"error": "missing events"}
        self.on_events([e for e in events if isinstance(e, dict)])
        return 200, {}

    async def _handle_push(
        self, path: str, headers: dict[str, str], body: bytes
    ) -> tuple[int, dict[str, Any]]:
        if self.push_token:
            expected = f"Bearer {self.push_token}"
            if not hmac.compare_digest(headers.get("authorization", ""), expected):
                return 401, {"error": "unauthorized"}
        if self.on_push is None:
            return 404, {"error": "not found"}
        try:
            payload = json.loads(body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return 400, {"error": "invalid json"}
        if not isinstance(payload, dict):
            return 400, {"error": "invalid json"}

        to = str(payload.get("to") or payload.get("userId") or "").strip()
        if path == "/send-text-message":
            text = str(payload.get("text") or payload.get("message") or "").strip()
            if not to or not text:
                return 400, {"error": "'to' and 'text' are required"}
            messages = [{"type": "text", "text": text}]
        else:
            url = str(payload.get("url") or payload.get("imageUrl") or "").strip()
            if not to or not url:
                return 400, {"error": "'to' and 'url' are required"}
            preview = str(payload.get("previewUrl") or url)
            messages = [{"type": "image", "originalContentUrl": url, "previewImageUrl": preview}]

        try:
            await self.on_push(to, messages)
        except Exception as e:
            logger.error(f"Push to {to} failed: {e}")
            return 502, {"error": str(e)}
        return 200, {"status": "sent"}
