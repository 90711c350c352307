"""Blob uploads through presigned URLs."""

import mimetypes
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

import httpx
from loguru import logger


class UploadError(RuntimeError):
    """Raised when a file could not be stored."""


class BlobUploader(Protocol):
    async def upload_file(self, content: bytes, name: str) -> str: ...


class PresignedUploader:
    """
    Upload files with a two-step presigned flow.

    1. POST `{"filename": name}` to the presign endpoint, which answers
       `{"url": <signed PUT url>, "publicUrl": <optional public url>}`.
    2. PUT the bytes to the signed URL.

    The public URL is `publicUrl` when given, else the signed URL without its query.
    """

    def __init__(self, presign_url: str, api_key: str = "", timeout: float = 30.0):
        self.presign_url = presign_url
        self.api_key = api_key
        self.timeout = timeout

    async def upload_file(self, content: bytes, name: str) -> str:
        if not self.presign_url:
            raise UploadError("presign endpoint not configured")

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        try:
            async with httpx.AsyncClient() as client:
                presign = await client.post(
                    self.presign_url, json={"filename": name}, headers=headers, timeout=self.timeout
                )
                presign.raise_for_status()
                data = presign.json()
                signed_url = str((data or {}).get("url") or "")
                if not signed_url:
                    raise UploadError(f"presign response for {name} has no url")

                put = await client.put(
                    signed_url,
                    content=content,
                    headers={"Content-Type": content_type},
                    timeout=self.timeout,
                )
                put.raise_for_status()
        except UploadError:
            raise
        except Exception as e:
            logger.error(f"Upload of {name} failed: {e}")
            raise UploadError(f"upload of {name} failed: {e}") from e

        public_url = str(data.get("publicUrl") or "")
        if public_url:
            return public_url
        parts = urlsplit(signed_url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
