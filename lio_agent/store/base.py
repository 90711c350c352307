"""Store contracts consumed by the reply pipeline and its tools."""

from typing import Any, Protocol

from lio_agent.store.models import ConversationMessage, Feedback, Job, Memory, Task, User


class MessageStore(Protocol):
    async def get_messages_by_user_id(
        self, user_id: str, limit: int = 30
    ) -> list[ConversationMessage]: ...

    async def create_message(self, message: ConversationMessage) -> ConversationMessage: ...


class TaskStore(Protocol):
    async def get_tasks_by_user_id(self, user_id: str) -> list[Task]: ...

    async def create_task(self, task: Task) -> Task: ...

    async def create_tasks(self, tasks: list[Task]) -> list[Task]: ...

    async def update_task_by_id(
        self, task_id: str, changes: dict[str, Any], user_id: str | None = None
    ) -> Task | None: ...

    async def delete_task_by_id(self, task_id: str, user_id: str | None = None) -> bool: ...


class JobStore(Protocol):
    async def create_job(self, job: Job) -> Job: ...

    async def delete_job_by_id(self, job_id: str, user_id: str | None = None) -> bool: ...

    async def get_jobs_by_user_id(self, user_id: str) -> list[Job]: ...


class MemoryStore(Protocol):
    async def create_memory(self, memory: Memory) -> Memory: ...

    async def get_memories_by_user_id(self, user_id: str) -> list[Memory]: ...

    async def search_memories_by_user_id(self, user_id: str, query: str) -> list[Memory]: ...

    async def delete_memory_by_id(self, memory_id: str, user_id: str | None = None) -> bool: ...


class FeedbackStore(Protocol):
    async def create_feedback(self, feedback: Feedback) -> Feedback: ...


class UserStore(Protocol):
    async def get_user_by_line_id(self, line_user_id: str) -> User | None: ...

    async def create_user(self, user: User) -> User: ...
