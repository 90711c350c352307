"""Agent tools and the per-turn capability registry."""

from lio_agent.agent.tools.base import Tool
from lio_agent.agent.tools.feedback import UserFeedbackTool
from lio_agent.agent.tools.files import LoadFileContentTool
from lio_agent.agent.tools.jobs import GetJobsTool, RemoveJobTool, ScheduleJobTool
from lio_agent.agent.tools.memory import CreateMemoryTool, DeleteMemoryTool, RetrieveMemoriesTool
from lio_agent.agent.tools.registry import ToolArgumentsError, ToolRegistry, UnknownToolError
from lio_agent.agent.tools.tasks import (
    AddTasksTool,
    AddTaskTool,
    DeleteTaskTool,
    GetTasksTool,
    UpdateTaskTool,
)
from lio_agent.agent.tools.web import LoadWebContentTool, SearchWebTool
from lio_agent.providers.base import LLMProvider
from lio_agent.store.base import FeedbackStore, JobStore, MemoryStore, TaskStore


def build_tool_registry(
    *,
    user_id: str,
    tasks: TaskStore,
    jobs: JobStore,
    memories: MemoryStore,
    feedback: FeedbackStore,
    provider: LLMProvider,
    search_model: str | None = None,
    file_parse_url: str = "",
    web_timeout: float = 20.0,
    web_max_chars: int = 20000,
    file_timeout: float = 60.0,
    turn_key: str | None = None,
) -> ToolRegistry:
    """Build the full capability set bound to one user for one turn."""
    registry = ToolRegistry()
    for tool in (
        SearchWebTool(provider, model=search_model),
        LoadWebContentTool(timeout=web_timeout, max_chars=web_max_chars),
        LoadFileContentTool(file_parse_url, timeout=file_timeout),
        GetTasksTool(tasks, user_id),
        AddTaskTool(tasks, user_id, turn_key=turn_key),
        AddTasksTool(tasks, user_id, turn_key=turn_key),
        UpdateTaskTool(tasks, user_id),
        DeleteTaskTool(tasks, user_id),
        ScheduleJobTool(jobs, user_id),
        RemoveJobTool(jobs, user_id),
        GetJobsTool(jobs, user_id),
        CreateMemoryTool(memories, user_id),
        RetrieveMemoriesTool(memories, user_id),
        DeleteMemoryTool(memories, user_id),
        UserFeedbackTool(feedback, user_id),
    ):
        registry.register(tool)
    return registry


__all__ = [
    "Tool",
    "ToolRegistry",
    "ToolArgumentsError",
    "UnknownToolError",
    "build_tool_registry",
]
