"""Image generation provider using LiteLLM."""

import base64
import os

import litellm
from loguru import logger


class LiteLLMImageProvider:
    """Generates one image per prompt through `litellm.aimage_generation`."""

    def __init__(
        self,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        api_key: str | None = None,
        api_base: str | None = None,
    ):
        self.model = model
        self.size = size
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.api_base = api_base

    async def generate(self, prompt: str) -> bytes | None:
        """Return image bytes for `prompt`, or None on failure."""
        if not prompt.strip():
            return None
        kwargs = {
            "model": self.model,
            "prompt": prompt,
            "n": 1,
            "size": self.size,
            "response_format": "b64_json",
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = await litellm.aimage_generation(**kwargs)
            data = response.data[0]
            b64 = data.get("b64_json") if isinstance(data, dict) else getattr(data, "b64_json", None)
            if not b64:
                logger.error(f"Image generation returned no data for prompt: {prompt[:80]}")
                return None
            return base64.b64decode(b64)
        except Exception as e:
            logger.error(f"Image generation error: {e}")
            return None
