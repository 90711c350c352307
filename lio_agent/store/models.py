"""Domain records shared by the stores, tools and the reply pipeline."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Union

from lio_agent.utils.helpers import now_iso

Role = Literal["user", "assistant"]
Priority = Literal["low", "medium", "high", "urgent"]
PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ImagePart:
    url: str


@dataclass(frozen=True)
class FilePart:
    url: str
    mime_type: str = "application/octet-stream"


ContentPart = Union[TextPart, ImagePart, FilePart]
Content = Union[str, list[ContentPart]]


def part_to_dict(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ImagePart):
        return {"type": "image", "url": part.url}
    if isinstance(part, FilePart):
        return {"type": "file", "url": part.url, "mimeType": part.mime_type}
    raise TypeError(f"unknown content part: {part!r}")


def part_from_dict(data: dict[str, Any]) -> ContentPart:
    kind = data.get("type")
    if kind == "text":
        return TextPart(text=str(data.get("text", "")))
    if kind == "image":
        return ImagePart(url=str(data.get("url") or data.get("image") or ""))
    if kind == "file":
        return FilePart(
            url=str(data.get("url") or data.get("data") or ""),
            mime_type=str(data.get("mimeType") or "application/octet-stream"),
        )
    raise ValueError(f"unknown content part type: {kind!r}")


def content_to_json(content: Content) -> str | list[dict[str, Any]]:
    if isinstance(content, str):
        return content
    return [part_to_dict(part) for part in content]


def content_from_json(raw: Any) -> Content:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        return [part_from_dict(item) for item in raw if isinstance(item, dict)]
    return ""


def content_text(content: Content) -> str:
    """Plain-text view of a content value (text parts only)."""
    if isinstance(content, str):
        return content
    return "\n".join(part.text for part in content if isinstance(part, TextPart))


@dataclass
class ConversationMessage:
    user_id: str
    role: Role
    content: Content
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "role": self.role,
            "content": content_to_json(self.content),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationMessage:
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            role=data.get("role", "user"),
            content=content_from_json(data.get("content")),
            created_at=str(data.get("createdAt") or now_iso()),
        )


@dataclass
class Task:
    user_id: str
    title: str
    description: str = ""
    priority: Priority = "medium"
    due_at: str | None = None
    completed: bool = False
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)


@dataclass
class JobPayload:
    message: str


@dataclass
class JobParameters:
    payload: JobPayload
    type: str = "push-message"


@dataclass
class Job:
    user_id: str
    name: str
    schedule: str
    type: Literal["one-time", "cron"]
    parameters: JobParameters
    status: str = "pending"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)


@dataclass
class Memory:
    user_id: str
    content: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)


@dataclass
class Feedback:
    user_id: str
    content: str
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)


@dataclass
class User:
    line_user_id: str
    display_name: str = ""
    voice: str = "Sarah"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)


def record_to_dict(record: Any) -> dict[str, Any]:
    """Serialize a dataclass record (tasks, jobs, memories, users)."""
    return asdict(record)


def task_from_dict(data: dict[str, Any]) -> Task:
    return Task(**data)


def job_from_dict(data: dict[str, Any]) -> Job:
    params = dict(data.get("parameters") or {})
    payload = dict(params.get("payload") or {})
    return Job(
        id=data["id"],
        user_id=data["user_id"],
        name=data.get("name", ""),
        schedule=data.get("schedule", ""),
        type=data.get("type", "one-time"),
        status=data.get("status", "pending"),
        created_at=data.get("created_at") or now_iso(),
        parameters=JobParameters(
            type=params.get("type", "push-message"),
            payload=JobPayload(message=str(payload.get("message", ""))),
        ),
    )


def memory_from_dict(data: dict[str, Any]) -> Memory:
    return Memory(**data)


def feedback_from_dict(data: dict[str, Any]) -> Feedback:
    return Feedback(**data)


def user_from_dict(data: dict[str, Any]) -> User:
    return User(**data)
