"""Memory tools: store, retrieve and delete facts about the user."""

from typing import Any

from pydantic import Field

from lio_agent.agent.tools.base import Tool, ToolArgs
from lio_agent.store.base import MemoryStore
from lio_agent.store.models import Memory


def _format_memories(memories: list[Memory]) -> str:
    return "\n".join(f"ID: {m.id} (不要顯示給使用者), 內容: {m.content}" for m in memories)


class CreateMemoryArgs(ToolArgs):
    content: str = Field(min_length=1, description="要記住的內容。")


class RetrieveMemoriesArgs(ToolArgs):
    query: str | None = Field(default=None, description="用戶的查詢詞。")


class MemoryIdArgs(ToolArgs):
    id: str = Field(min_length=1, description="要刪除的記憶的 UUID。")


class _MemoryTool(Tool):
    def __init__(self, store: MemoryStore, user_id: str):
        self._store = store
        self._user_id = user_id


class CreateMemoryTool(_MemoryTool):
    args_model = CreateMemoryArgs

    @property
    def name(self) -> str:
        return "createMemory"

    @property
    def description(self) -> str:
        return "Create a memory about the user."

    async def execute(self, content: str, **kwargs: Any) -> str:
        memory = await self._store.create_memory(Memory(user_id=self._user_id, content=content))
        return f"記憶創建成功：{memory.content} (內部使用 UUID: {memory.id}，不要顯示給使用者)"


class RetrieveMemoriesTool(_MemoryTool):
    """Search memories by query, falling back to every memory when nothing matches."""

    args_model = RetrieveMemoriesArgs

    @property
    def name(self) -> str:
        return "retrieveMemories"

    @property
    def description(self) -> str:
        return "獲取用戶的記憶，如有提供查詢詞，則根據用戶的查詢詞進行搜尋。"

    async def execute(self, query: str | None = None, **kwargs: Any) -> str:
        if query and query.strip():
            matches = await self._store.search_memories_by_user_id(self._user_id, query)
            if matches:
                return _format_memories(matches)
        memories = await self._store.get_memories_by_user_id(self._user_id)
        if not memories:
            return "沒有找到用戶的記憶。"
        return _format_memories(memories)


class DeleteMemoryTool(_MemoryTool):
    args_model = MemoryIdArgs

    @property
    def name(self) -> str:
        return "deleteMemory"

    @property
    def description(self) -> str:
        return "刪除用戶的記憶。"

    async def execute(self, id: str, **kwargs: Any) -> str:
        if not await self._store.delete_memory_by_id(id, user_id=self._user_id):
            return "無法刪除記憶。請稍後再試。"
        return "記憶刪除成功。"
