"""Conversation, task, job, memory, feedback and user storage."""

from lio_agent.store.json_store import WorkspaceStore
from lio_agent.store.models import (
    Content,
    ContentPart,
    ConversationMessage,
    Feedback,
    FilePart,
    ImagePart,
    Job,
    Memory,
    Task,
    TextPart,
    User,
)

__all__ = [
    "WorkspaceStore",
    "Content",
    "ContentPart",
    "ConversationMessage",
    "Feedback",
    "FilePart",
    "ImagePart",
    "Job",
    "Memory",
    "Task",
    "TextPart",
    "User",
]
