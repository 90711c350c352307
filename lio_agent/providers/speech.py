"""Text-to-speech provider using ElevenLabs."""

import os
from dataclasses import dataclass

import httpx
from loguru import logger


@dataclass
class SpeechClip:
    """Synthesized audio payload."""
    audio: bytes
    mime_type: str = "audio/mpeg"
    duration_ms: int | None = None  # Set only when the provider reports it


class ElevenLabsSpeechProvider:
    """
    Voice synthesis provider using the ElevenLabs text-to-speech API.

    Voices are addressed by persona name ("Sarah", "Roger"); unknown names fall
    back to the default persona.
    """

    def __init__(
        self,
        api_key: str | None = None,
        voices: dict[str, str] | None = None,
        default_voice: str = "Sarah",
        model: str | None = None,
        api_base: str | None = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.environ.get("ELEVENLABS_API_KEY")
        self.voices = dict(voices or {})
        self.default_voice = default_voice
        self.model = model or os.environ.get("ELEVENLABS_TTS_MODEL", "eleven_multilingual_v2")
        self.api_base = (api_base or "https://api.elevenlabs.io").rstrip("/")
        self.timeout = timeout

    def resolve_voice(self, voice: str | None) -> str:
        """Return a supported persona name, falling back to the default."""
        if voice and voice in self.voices:
            return voice
        return self.default_voice

    async def synthesize(self, text: str, voice: str | None = None) -> SpeechClip | None:
        """
        Synthesize `text` with the given persona.

        Returns:
            The audio clip, or None when synthesis failed.
        """
        if not self.api_key:
            logger.warning("ElevenLabs API key not configured for speech synthesis")
            return None
        if not text.strip():
            return None

        persona = self.resolve_voice(voice)
        voice_id = self.voices.get(persona, persona)
        url = f"{self.api_base}/v1/text-to-speech/{voice_id}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url,
                    headers={"xi-api-key": self.api_key, "Accept": "audio/mpeg"},
                    json={"text": text, "model_id": self.model},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                audio = response.content
        except Exception as e:
            logger.error(f"ElevenLabs synthesis error ({persona}): {e}")
            return None

        if not audio:
            logger.error(f"ElevenLabs returned an empty clip for {persona}")
            return None
        return SpeechClip(audio=audio)
