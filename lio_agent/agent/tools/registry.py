"""Tool registry for dynamic tool management."""

from typing import Any

from loguru import logger
from pydantic import ValidationError

from lio_agent.agent.tools.base import Tool


class UnknownToolError(KeyError):
    """Raised when the model names a tool that is not registered."""


class ToolArgumentsError(ValueError):
    """Raised when tool arguments fail schema validation."""

    def __init__(self, tool_name: str, arguments: dict[str, Any], detail: str):
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")
        self.tool_name = tool_name
        self.arguments = arguments
        self.detail = detail


class ToolRegistry:
    """
    Registry for agent tools.

    Allows dynamic registration and execution of tools.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        """Unregister a tool by name."""
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get all tool definitions in OpenAI format."""
        return [tool.to_schema() for tool in self._tools.values()]

    def check_arguments(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Validate arguments for a tool call.

        Returns:
            The normalized arguments.

        Raises:
            UnknownToolError: No tool with that name is registered.
            ToolArgumentsError: The arguments do not satisfy the tool's schema.
        """
        tool = self._tools.get(name)
        if not tool:
            raise UnknownToolError(name)
        try:
            validated = tool.validate_params(params)
        except ValidationError as e:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolArgumentsError(name, params, detail) from e
        return validated.model_dump()

    async def execute(self, name: str, params: dict[str, Any]) -> str:
        """
        Execute a tool by name with given parameters.

        Args:
            name: Tool name.
            params: Tool parameters.

        Returns:
            Tool execution result as string.
        """
        tool = self._tools.get(name)
        if not tool:
            return f"Error: Tool '{name}' not found"

        try:
            arguments = self.check_arguments(name, params)
        except ToolArgumentsError as e:
            return f"Error: {e}"

        try:
            return await tool.execute(**arguments)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return f"Error executing {name}: {str(e)}"

    @property
    def tool_names(self) -> list[str]:
        """Get list of registered tool names."""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
