"""Workspace JSON-file implementation of every store contract."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from lio_agent.store.models import (
    ConversationMessage,
    Feedback,
    Job,
    Memory,
    Task,
    User,
    job_from_dict,
    memory_from_dict,
    record_to_dict,
    task_from_dict,
    user_from_dict,
)
from lio_agent.utils.helpers import ensure_dir

_TASK_FIELDS = {"title", "description", "priority", "due_at", "completed"}


class WorkspaceStore:
    """Store users, history, tasks, jobs, memories and feedback in workspace/state/store."""

    def __init__(self, workspace: Path):
        self.workspace = workspace
        self.store_dir = ensure_dir(workspace / "state" / "store")

    def _path(self, collection: str) -> Path:
        return self.store_dir / f"{collection}.json"

    def _read_items(self, collection: str) -> list[Any]:
        """Raw rows of a collection; an undecodable file is moved aside and reads as empty."""
        path = self._path(collection)
        if not path.exists():
            return []
        raw = path.read_bytes()
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._quarantine(collection, f"invalid JSON: {e}")
            return []
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            self._quarantine(collection, "missing items list")
            return []
        return items

    def _quarantine(self, collection: str, reason: str) -> None:
        path = self._path(collection)
        stamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
        target = path.with_name(f"{path.name}.corrupt-{stamp}")
        path.replace(target)
        logger.error(f"Store collection {collection} unreadable ({reason}); moved to {target.name}")

    def _safe_read(self, collection: str) -> list[dict[str, Any]]:
        try:
            items = self._read_items(collection)
        except OSError as e:
            logger.warning(f"Store collection {collection} unreadable: {e}")
            return []
        return [item for item in items if isinstance(item, dict)]

    def _safe_write(self, collection: str, items: list[dict[str, Any]]) -> None:
        path = self._path(collection)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps({"items": items}, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        tmp_path.replace(path)

    def _load(self, collection: str, factory: Callable[[dict[str, Any]], Any]) -> list[Any]:
        records = []
        for item in self._safe_read(collection):
            try:
                records.append(factory(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed {collection} row: {e}")
        return records

    def _append(self, collection: str, rows: list[dict[str, Any]]) -> None:
        items = self._read_items(collection)
        items.extend(rows)
        self._safe_write(collection, items)

    @staticmethod
    def _owns_row(item: Any, user_id: str | None) -> bool:
        if not isinstance(item, dict):
            return False
        return user_id is None or item.get("user_id") == user_id

    # Messages

    async def get_messages_by_user_id(
        self, user_id: str, limit: int = 30
    ) -> list[ConversationMessage]:
        """Newest `limit` messages for a user, returned oldest-first."""
        rows = self._load("messages", ConversationMessage.from_dict)
        mine = [m for m in rows if m.user_id == user_id]
        mine.sort(key=lambda m: m.created_at)
        if limit <= 0:
            return []
        return mine[-limit:]

    async def create_message(self, message: ConversationMessage) -> ConversationMessage:
        self._append("messages", [message.to_dict()])
        return message

    # Tasks

    async def get_tasks_by_user_id(self, user_id: str) -> list[Task]:
        return [t for t in self._load("tasks", task_from_dict) if t.user_id == user_id]

    async def create_task(self, task: Task) -> Task:
        created = await self.create_tasks([task])
        return created[0]

    async def create_tasks(self, tasks: list[Task]) -> list[Task]:
        """Create tasks; a task whose id already exists is returned unchanged."""
        existing = {t.id: t for t in self._load("tasks", task_from_dict)}
        result: list[Task] = []
        fresh: list[dict[str, Any]] = []
        for task in tasks:
            if task.id in existing:
                result.append(existing[task.id])
                continue
            existing[task.id] = task
            fresh.append(record_to_dict(task))
            result.append(task)
        if fresh:
            self._append("tasks", fresh)
        return result

    async def update_task_by_id(
        self, task_id: str, changes: dict[str, Any], user_id: str | None = None
    ) -> Task | None:
        items = self._read_items("tasks")
        for index, item in enumerate(items):
            if not (self._owns_row(item, user_id) and item.get("id") == task_id):
                continue
            patch = {k: v for k, v in changes.items() if k in _TASK_FIELDS and v is not None}
            try:
                updated = task_from_dict({**item, **patch})
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Cannot update malformed task row {task_id}: {e}")
                return None
            items[index] = record_to_dict(updated)
            self._safe_write("tasks", items)
            return updated
        return None

    async def delete_task_by_id(self, task_id: str, user_id: str | None = None) -> bool:
        return self._delete("tasks", task_id, user_id)

    # Jobs

    async def create_job(self, job: Job) -> Job:
        self._append("jobs", [record_to_dict(job)])
        return job

    async def delete_job_by_id(self, job_id: str, user_id: str | None = None) -> bool:
        return self._delete("jobs", job_id, user_id)

    async def get_jobs_by_user_id(self, user_id: str) -> list[Job]:
        return [j for j in self._load("jobs", job_from_dict) if j.user_id == user_id]

    # Memories

    async def create_memory(self, memory: Memory) -> Memory:
        self._append("memories", [record_to_dict(memory)])
        return memory

    async def get_memories_by_user_id(self, user_id: str) -> list[Memory]:
        return [m for m in self._load("memories", memory_from_dict) if m.user_id == user_id]

    async def search_memories_by_user_id(self, user_id: str, query: str) -> list[Memory]:
        """Case-insensitive substring match over any whitespace-separated query term."""
        terms = [t for t in query.lower().split() if t]
        if not terms:
            return []
        memories = await self.get_memories_by_user_id(user_id)
        return [m for m in memories if any(term in m.content.lower() for term in terms)]

    async def delete_memory_by_id(self, memory_id: str, user_id: str | None = None) -> bool:
        return self._delete("memories", memory_id, user_id)

    # Feedback

    async def create_feedback(self, feedback: Feedback) -> Feedback:
        self._append("feedback", [record_to_dict(feedback)])
        return feedback

    # Users

    async def get_user_by_line_id(self, line_user_id: str) -> User | None:
        for user in self._load("users", user_from_dict):
            if user.line_user_id == line_user_id:
                return user
        return None

    async def create_user(self, user: User) -> User:
        self._append("users", [record_to_dict(user)])
        return user

    def _delete(self, collection: str, record_id: str, user_id: str | None) -> bool:
        items = self._read_items(collection)
        kept = [
            item
            for item in items
            if not (self._owns_row(item, user_id) and item.get("id") == record_id)
        ]
        if len(kept) == len(items):
            return False
        self._safe_write(collection, kept)
        return True
