"""Media synthesis: narration to one audio clip, image prompts to images."""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from lio_agent.bus.events import AudioMessage, ImageMessage, OutboundMessage, TextMessage
from lio_agent.providers.speech import SpeechClip
from lio_agent.storage.uploader import BlobUploader

VOICE_BITRATE_BYTES_PER_SECOND = 16 * 1024
MIN_AUDIO_DURATION_MS = 1000

VOICE_FALLBACK = "⚠️ Sorry, I couldn't generate the voice message. Here's what I wanted to say: \"{narration}\""
IMAGE_FALLBACK = "⚠️ Sorry, I couldn't generate the requested image for prompt: \"{prompt}\"."


class SpeechProvider(Protocol):
    async def synthesize(self, text: str, voice: str | None = None) -> SpeechClip | None: ...


class ImageProvider(Protocol):
    async def generate(self, prompt: str) -> bytes | None: ...


def estimate_duration_ms(size_bytes: int) -> int:
    """Playback length from payload size at an assumed 16 KiB/s, floored at one second."""
    estimate = int(size_bytes * 1000 / VOICE_BITRATE_BYTES_PER_SECOND + 0.5)
    return max(MIN_AUDIO_DURATION_MS, estimate)


def _image_extension(data: bytes) -> str:
    if data.startswith(b"\x89PNG"):
        return "png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return "jpg"


@dataclass
class MediaResult:
    audio: OutboundMessage | None = None
    images: list[OutboundMessage] = field(default_factory=list)


class MediaSynthesizer:
    """
    Turns merged segments into platform messages.

    Voice and every image run concurrently; each item that fails is replaced by
    a fallback text message without affecting the others.
    """

    def __init__(self, speech: SpeechProvider, images: ImageProvider, uploader: BlobUploader):
        self.speech = speech
        self.images = images
        self.uploader = uploader

    @staticmethod
    def _artifact_name(prefix: str, extension: str) -> str:
        return f"{prefix}-{int(time.time() * 1000)}-{random.random()}.{extension}"

    async def synthesize_voice(
        self, narration: str, voice: str | None, prefix: str = "voice"
    ) -> OutboundMessage:
        try:
            clip = await self.speech.synthesize(narration, voice)
            if clip is None:
                raise RuntimeError("speech provider returned no audio")
            url = await self.uploader.upload_file(clip.audio, self._artifact_name(prefix, "mp3"))
            duration = clip.duration_ms or estimate_duration_ms(len(clip.audio))
            return AudioMessage(original_content_url=url, duration=duration)
        except Exception as e:
            logger.warning(f"Voice synthesis failed, sending text instead: {e}")
            return TextMessage(text=VOICE_FALLBACK.format(narration=narration))

    async def synthesize_image(self, prompt: str, prefix: str = "image") -> OutboundMessage:
        try:
            data = await self.images.generate(prompt)
            if not data:
                raise RuntimeError("image provider returned no data")
            url = await self.uploader.upload_file(
                data, self._artifact_name(prefix, _image_extension(data))
            )
            return ImageMessage(original_content_url=url, preview_image_url=url)
        except Exception as e:
            logger.warning(f"Image generation failed for prompt {prompt[:60]!r}: {e}")
            return TextMessage(text=IMAGE_FALLBACK.format(prompt=prompt))

    async def synthesize(
        self,
        narration: str,
        image_prompts: list[str],
        voice: str | None = None,
        prefix: str = "reply",
    ) -> MediaResult:
        jobs = [self.synthesize_image(p, prefix) for p in image_prompts]
        if narration.strip():
            jobs.insert(0, self.synthesize_voice(narration, voice, prefix))
        results = await asyncio.gather(*jobs)

        media = MediaResult()
        if narration.strip():
            media.audio = results[0]
            results = results[1:]
        media.images = list(results)
        return media
