"""Remote file parsing tool."""

from typing import Any

import httpx
from loguru import logger
from pydantic import Field

from lio_agent.agent.tools.base import Tool, ToolArgs

EMPTY_FILE_MESSAGE = "無法加載文件內容。請檢查文件格式或內容。"


class FileUrlArgs(ToolArgs):
    url: str = Field(min_length=1, description="要加載內容的文件 URL。")


async def parse_file(parse_url: str, file_url: str, timeout: float = 60.0) -> str:
    """POST `{url}` to the parse service; returns "" when parsing fails."""
    if not parse_url:
        logger.warning("File parse endpoint not configured")
        return ""
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(parse_url, json={"url": file_url}, timeout=timeout)
            response.raise_for_status()
            if "json" in response.headers.get("content-type", ""):
                data = response.json()
                if isinstance(data, dict):
                    return str(data.get("text") or data.get("content") or "")
                return ""
            return response.text
    except Exception as e:
        logger.error(f"File parse error for {file_url}: {e}")
        return ""


class LoadFileContentTool(Tool):
    """Return the text of a user-uploaded file."""

    args_model = FileUrlArgs

    def __init__(self, parse_url: str, timeout: float = 60.0):
        self.parse_url = parse_url
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "loadFileContent"

    @property
    def description(self) -> str:
        return "從指定的文件 URL 加載內容。"

    async def execute(self, url: str, **kwargs: Any) -> str:
        text = await parse_file(self.parse_url, url, timeout=self.timeout)
        if not text.strip():
            return EMPTY_FILE_MESSAGE
        return text
