"""LiteLLM provider implementation for multi-provider support."""

import json
import os
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from lio_agent.providers.base import LLMProvider, LLMResponse, StructuredOutputError, ToolCallRequest

# Bare model name keyword -> LiteLLM provider prefix.
_MODEL_PREFIXES = (
    ("gemini", "gemini"),
    ("claude", "anthropic"),
)

_ENV_KEYS = {
    "gemini": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM for multi-provider support.

    Serves Gemini, OpenAI, Anthropic and OpenRouter models through a unified
    interface, including the schema-constrained calls used for planning and
    tool-argument repair.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gemini/gemini-2.0-flash-001",
        provider_name: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.provider_name = provider_name
        self.extra_headers = extra_headers or {}

        env_key = _ENV_KEYS.get(provider_name or "")
        if api_key and env_key:
            os.environ.setdefault(env_key, api_key)

        litellm.suppress_debug_info = True
        litellm.drop_params = True

    def _resolve_model(self, model: str) -> str:
        """Apply provider prefixes LiteLLM needs for routing."""
        if self.provider_name == "openrouter" and not model.startswith("openrouter/"):
            return f"openrouter/{model}"
        if "/" in model:
            return model
        lowered = model.lower()
        for keyword, prefix in _MODEL_PREFIXES:
            if keyword in lowered:
                return f"{prefix}/{model}"
        return model

    def _base_kwargs(self, model: str | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self._resolve_model(model or self.default_model)}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers
        return kwargs

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **options: Any,
    ) -> LLMResponse:
        kwargs = self._base_kwargs(model)
        kwargs.update(
            {
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        for key in ("presence_penalty", "frequency_penalty"):
            if options.get(key) is not None:
                kwargs[key] = options[key]
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            return LLMResponse(
                content=f"Error calling LLM: {str(e)}",
                finish_reason="error",
            )

    async def structured(
        self,
        messages: list[dict[str, Any]],
        schema: dict[str, Any],
        name: str = "result",
        model: str | None = None,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        kwargs = self._base_kwargs(model)
        kwargs.update(
            {
                "messages": messages,
                "temperature": temperature,
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {"name": name, "schema": schema},
                },
            }
        )
        try:
            response = await acompletion(**kwargs)
        except Exception as e:
            raise StructuredOutputError(f"structured call failed: {e}") from e

        content = response.choices[0].message.content or ""
        try:
            data = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as e:
            raise StructuredOutputError(f"structured call returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StructuredOutputError("structured call did not return a JSON object")
        return data

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]
        message = choice.message

        tool_calls = []
        if hasattr(message, "tool_calls") and message.tool_calls:
            for tc in message.tool_calls:
                raw = tc.function.arguments
                args: Any = raw
                raw_text = ""
                if isinstance(raw, str):
                    try:
                        args = json.loads(raw) if raw.strip() else {}
                    except json.JSONDecodeError:
                        logger.debug(f"Tool call {tc.function.name} has unparseable arguments")
                        args = {}
                        raw_text = raw
                if not isinstance(args, dict):
                    raw_text = raw_text or json.dumps(args, ensure_ascii=False)
                    args = {}
                tool_calls.append(
                    ToolCallRequest(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=args,
                        raw_arguments=raw_text,
                    )
                )

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()
