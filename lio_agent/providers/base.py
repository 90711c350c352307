"""Base LLM provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolCallRequest:
    """A tool call requested by the LLM."""
    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: str = ""  # Unparsed argument text when the model emitted invalid JSON


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return len(self.tool_calls) > 0


class StructuredOutputError(Exception):
    """Raised when a schema-constrained call does not yield a valid object."""


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implementations handle the specifics of each provider's API
    while maintaining a consistent interface.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **options: Any,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            tools: Optional list of tool definitions.
            model: Model identifier (provider-specific).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.
            **options: Extra sampling options (presence_penalty, frequency_penalty).

        Returns:
            LLMResponse with content and/or tool calls.
        """
        pass

    @abstractmethod
    async def structured(
        self,
        messages: list[dict[str, Any]],
        schema: dict[str, Any],
        name: str = "result",
        model: str | None = None,
        temperature: float = 0.0,
    ) -> dict[str, Any]:
        """
        Request a JSON object constrained to `schema`.

        Raises:
            StructuredOutputError: The call failed or the result is not a JSON object.
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        pass
