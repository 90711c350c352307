"""Web tools: grounded web search and page loading."""

import html
import re
from typing import Any
from urllib.parse import urlparse

import httpx
from loguru import logger
from pydantic import Field

from lio_agent.agent.tools.base import Tool, ToolArgs
from lio_agent.providers.base import LLMProvider

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/537.36 (KHTML, like Gecko)"


def _strip_tags(text: str) -> str:
    """Remove HTML tags, scripts and styles, then unescape entities."""
    text = re.sub(r"<script[\s\S]*?</script\s*>", "", text, flags=re.I)
    text = re.sub(r"<style[\s\S]*?</style\s*>", "", text, flags=re.I)
    text = re.sub(r"<[^>]+>", "", text)
    return html.unescape(text).strip()


def _normalize(text: str) -> str:
    """Collapse runs of spaces and blank lines."""
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def _validate_url(url: str) -> tuple[bool, str]:
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return False, str(e)
    if parsed.scheme not in {"http", "https"}:
        return False, f"Only http/https allowed, got '{parsed.scheme or 'none'}'"
    if not parsed.netloc:
        return False, "Missing domain"
    return True, ""


class QueryArgs(ToolArgs):
    query: str = Field(min_length=1, description="搜尋關鍵字。")


class UrlArgs(ToolArgs):
    url: str = Field(min_length=1, description="要加載內容的 URL。")


class SearchWebTool(Tool):
    """Answer a query with a single call to a search-grounded model."""

    args_model = QueryArgs

    def __init__(self, provider: LLMProvider, model: str | None = None):
        self._provider = provider
        self._model = model

    @property
    def name(self) -> str:
        return "searchWeb"

    @property
    def description(self) -> str:
        return "搜尋網路資訊以獲取相關資料，並提供給用戶。"

    async def execute(self, query: str, **kwargs: Any) -> str:
        messages = [
            {"role": "system", "content": "根據用戶的查詢詞搜尋網路資訊。"},
            {"role": "user", "content": f"使用者想要搜尋：{query}。請提供相關的網路資訊。"},
        ]
        response = await self._provider.chat(
            messages=messages,
            tools=[{"googleSearch": {}}],
            model=self._model,
        )
        if response.finish_reason == "error":
            logger.error(f"searchWeb failed: {response.content}")
            return f"Error: {response.content}"
        return response.content or "沒有找到相關的網路資訊。"


class LoadWebContentTool(Tool):
    """Fetch a page and return its readable text."""

    args_model = UrlArgs

    def __init__(self, timeout: float = 20.0, max_chars: int = 20000):
        self.timeout = timeout
        self.max_chars = max_chars

    @property
    def name(self) -> str:
        return "loadWebContent"

    @property
    def description(self) -> str:
        return "從指定的 URL 加載網頁內容。"

    async def execute(self, url: str, **kwargs: Any) -> str:
        ok, reason = _validate_url(url)
        if not ok:
            return f"Error: invalid URL ({reason})"

        try:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(
                    url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout
                )
                response.raise_for_status()
        except Exception as e:
            logger.warning(f"loadWebContent failed for {url}: {e}")
            return f"Error: could not load {url}: {e}"

        content_type = response.headers.get("content-type", "")
        body = response.text
        if "html" in content_type or body.lstrip().lower().startswith(("<!doctype", "<html")):
            title_match = re.search(r"<title[^>]*>([\s\S]*?)</title>", body, flags=re.I)
            title = _strip_tags(title_match.group(1)) if title_match else ""
            text = _normalize(_strip_tags(body))
            if title:
                text = f"{title}\n\n{text}"
        else:
            text = _normalize(body)

        if len(text) > self.max_chars:
            text = text[: self.max_chars] + "\n...(truncated)"
        return text or "這個網頁沒有可讀取的內容。"
