"""LLM, speech and image provider module."""

from lio_agent.providers.base import LLMProvider, LLMResponse, StructuredOutputError, ToolCallRequest
from lio_agent.providers.image import LiteLLMImageProvider
from lio_agent.providers.litellm_provider import LiteLLMProvider
from lio_agent.providers.speech import ElevenLabsSpeechProvider, SpeechClip

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "StructuredOutputError",
    "ToolCallRequest",
    "LiteLLMProvider",
    "LiteLLMImageProvider",
    "ElevenLabsSpeechProvider",
    "SpeechClip",
]
