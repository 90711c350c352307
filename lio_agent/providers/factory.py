"""Provider construction from configuration."""

from lio_agent.config.schema import Config
from lio_agent.providers.image import LiteLLMImageProvider
from lio_agent.providers.litellm_provider import LiteLLMProvider
from lio_agent.providers.speech import ElevenLabsSpeechProvider


def build_provider(config: Config, model: str | None = None) -> LiteLLMProvider:
    """Build the chat provider serving `model` (default: agents.defaults.model)."""
    model = model or config.agents.defaults.model
    provider_name = config.provider_for_model(model)
    api_key = config.get_api_key(model)
    if not api_key:
        raise ValueError(
            f"No API key configured for provider '{provider_name or 'unknown'}'. "
            "Set providers.<name>.apiKey or pass a custom provider."
        )
    return LiteLLMProvider(
        api_key=api_key,
        api_base=config.get_api_base(model),
        default_model=model,
        provider_name=provider_name,
    )


def build_speech_provider(config: Config) -> ElevenLabsSpeechProvider:
    return ElevenLabsSpeechProvider(
        api_key=config.providers.elevenlabs.api_key or None,
        voices=config.media.voices,
        default_voice=config.media.default_voice,
        model=config.media.tts_model,
        api_base=config.providers.elevenlabs.api_base,
        timeout=config.media.timeout_seconds,
    )


def build_image_provider(config: Config) -> LiteLLMImageProvider:
    model = config.media.image_model
    return LiteLLMImageProvider(
        model=model,
        size=config.media.image_size,
        api_key=config.get_api_key(model),
        api_base=config.get_api_base(model),
    )
