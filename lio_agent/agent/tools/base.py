"""Base class for agent tools."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


class ToolArgs(BaseModel):
    """Base for tool argument models; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


class NoArgs(ToolArgs):
    pass


def _inline_refs(node: Any, defs: dict[str, Any], property_map: bool = False) -> Any:
    """Inline `$ref`s; `property_map` marks a `properties` mapping whose keys are field names."""
    if isinstance(node, dict):
        if property_map:
            return {name: _inline_refs(value, defs) for name, value in node.items()}
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            return _inline_refs(defs.get(ref.rsplit("/", 1)[-1], {}), defs)
        return {
            key: _inline_refs(value, defs, property_map=key == "properties")
            for key, value in node.items()
            if key not in {"$defs", "title"}
        }
    if isinstance(node, list):
        return [_inline_refs(item, defs) for item in node]
    return node


def model_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema for `model` with `$ref`s inlined and titles dropped."""
    raw = model.model_json_schema()
    schema = _inline_refs(raw, raw.get("$defs", {}))
    schema.setdefault("properties", {})
    return schema


class Tool(ABC):
    """
    Abstract base class for agent tools.

    Tools are capabilities the model can invoke during generation. Each tool
    declares its arguments as a pydantic model; the registry validates the
    model's arguments against it before `execute` runs.
    """

    args_model: ClassVar[type[ToolArgs]] = NoArgs

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""
        pass

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        return model_schema(self.args_model)

    def validate_params(self, params: dict[str, Any]) -> ToolArgs:
        """Validate raw arguments; raises `pydantic.ValidationError`."""
        return self.args_model.model_validate(params)

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """
        Execute the tool with validated parameters.

        Returns:
            String result of the tool execution.
        """
        pass

    def to_schema(self) -> dict[str, Any]:
        """Convert tool to OpenAI function schema format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
