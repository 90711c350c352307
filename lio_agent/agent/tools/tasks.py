"""Task management tools: list, add, batch add, update and delete."""

import uuid
from typing import Any, Literal

from pydantic import Field

from lio_agent.agent.tools.base import NoArgs, Tool, ToolArgs
from lio_agent.store.base import TaskStore
from lio_agent.store.models import Task, new_id

PriorityName = Literal["low", "medium", "high", "urgent"]


def describe_task(task: Task, with_status: bool = False) -> str:
    text = (
        f"{task.title} - {task.description} "
        f"(截止日期: {task.due_at or '無'}, 優先級: {task.priority}"
    )
    if with_status:
        text += f", 完成狀態: {task.completed}"
    return text + ")"


class NewTaskArgs(ToolArgs):
    title: str = Field(min_length=1, description="新任務的標題。")
    description: str = Field(min_length=1, description="新任務的描述。")
    dueAt: str | None = Field(default=None, description="新任務的截止日期（格式 YYYY-MM-DD HH:mm，台北時間）。")
    priority: PriorityName = Field(description="新任務的優先級。")


class AddTasksArgs(ToolArgs):
    tasks: list[NewTaskArgs] = Field(min_length=1, description="要新增的任務。")


class UpdateTaskArgs(ToolArgs):
    id: str = Field(min_length=1, description="要更新的任務的 UUID。")
    title: str | None = Field(default=None, description="更新任務的標題。")
    description: str | None = Field(default=None, description="更新任務的描述。")
    dueAt: str | None = Field(default=None, description="更新任務的截止日期。")
    priority: PriorityName | None = Field(default=None, description="更新任務的優先級。")
    completed: bool | None = Field(default=None, description="更新任務的完成狀態。")


class TaskIdArgs(ToolArgs):
    id: str = Field(min_length=1, description="要刪除的任務的 UUID。")


class _TaskTool(Tool):
    def __init__(self, store: TaskStore, user_id: str, turn_key: str | None = None):
        self._store = store
        self._user_id = user_id
        self._turn_key = turn_key

    def _task_id(self, args: dict[str, Any]) -> str:
        """Stable id per turn so a re-run generation does not duplicate tasks."""
        if not self._turn_key:
            return new_id()
        key = "|".join(
            [self._turn_key, args["title"], args["description"], args.get("dueAt") or "", args["priority"]]
        )
        return str(uuid.uuid5(uuid.NAMESPACE_URL, key))

    def _new_task(self, args: dict[str, Any]) -> Task:
        return Task(
            id=self._task_id(args),
            user_id=self._user_id,
            title=args["title"],
            description=args["description"],
            due_at=args.get("dueAt"),
            priority=args["priority"],
            completed=False,
        )


class GetTasksTool(_TaskTool):
    """List the current user's tasks."""

    args_model = NoArgs

    @property
    def name(self) -> str:
        return "getTasks"

    @property
    def description(self) -> str:
        return "獲取用戶的任務列表。"

    async def execute(self, **kwargs: Any) -> str:
        tasks = await self._store.get_tasks_by_user_id(self._user_id)
        if not tasks:
            return "目前沒有任何任務。"
        return "\n".join(f"ID: {t.id}, {describe_task(t, with_status=True)}" for t in tasks)


class AddTaskTool(_TaskTool):
    """Create one task."""

    args_model = NewTaskArgs

    @property
    def name(self) -> str:
        return "addTask"

    @property
    def description(self) -> str:
        return "新增一個新的任務到用戶的待辦清單。"

    async def execute(self, **kwargs: Any) -> str:
        task = await self._store.create_task(self._new_task(kwargs))
        return f"任務新增成功：{describe_task(task)}"


class AddTasksTool(_TaskTool):
    """Create several tasks at once."""

    args_model = AddTasksArgs

    @property
    def name(self) -> str:
        return "addTasks"

    @property
    def description(self) -> str:
        return "批量新增多個任務到用戶的待辦清單。"

    async def execute(self, tasks: list[dict[str, Any]], **kwargs: Any) -> str:
        created = await self._store.create_tasks([self._new_task(t) for t in tasks])
        return "批量任務新增成功：" + "\n".join(describe_task(t) for t in created)


class UpdateTaskTool(_TaskTool):
    """Partially update one task."""

    args_model = UpdateTaskArgs

    @property
    def name(self) -> str:
        return "updateTask"

    @property
    def description(self) -> str:
        return "更新用戶的任務。"

    async def execute(self, id: str, **kwargs: Any) -> str:
        changes = {
            "title": kwargs.get("title"),
            "description": kwargs.get("description"),
            "due_at": kwargs.get("dueAt"),
            "priority": kwargs.get("priority"),
            "completed": kwargs.get("completed"),
        }
        task = await self._store.update_task_by_id(id, changes, user_id=self._user_id)
        if task is None:
            return "無法更新任務。找不到這個任務。"
        return f"任務更新成功：{describe_task(task, with_status=True)}"


class DeleteTaskTool(_TaskTool):
    """Delete one task."""

    args_model = TaskIdArgs

    @property
    def name(self) -> str:
        return "deleteTask"

    @property
    def description(self) -> str:
        return "刪除用戶的任務。"

    async def execute(self, id: str, **kwargs: Any) -> str:
        if not await self._store.delete_task_by_id(id, user_id=self._user_id):
            return "無法刪除任務。找不到這個任務。"
        return "任務刪除成功。"
