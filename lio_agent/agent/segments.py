"""Inline-tag segmentation of model output and markdown cleanup for LINE text."""

import re
from dataclasses import dataclass, field
from typing import Literal

from lio_agent.agent.generator import Step
from lio_agent.agent.retry import dedupe_steps

SegmentType = Literal["text", "voice", "image"]
MEDIA_TAGS: tuple[str, ...] = ("voice", "image")

_HTML_TAG = re.compile(r"</?([A-Za-z][\w-]*)[^<>]*>")


@dataclass(frozen=True)
class Segment:
    type: SegmentType
    content: str


def strip_markup(text: str) -> str:
    """Remove HTML-like tags, keeping bare <voice>/<image> markers."""

    def _keep_media(match: re.Match) -> str:
        tag = match.group(0)
        if tag in {"<voice>", "</voice>", "<image>", "</image>"}:
            return tag
        return ""

    return _HTML_TAG.sub(_keep_media, text)


def _marker_at(text: str, pos: int) -> tuple[str, str] | None:
    """Return (kind, tag) when a media marker starts at `pos`; kind is "open" or "close"."""
    if text[pos] != "<":
        return None
    for tag in MEDIA_TAGS:
        if text.startswith(f"<{tag}>", pos):
            return "open", tag
        if text.startswith(f"</{tag}>", pos):
            return "close", tag
    return None


def parse_segments(raw: str) -> list[Segment]:
    """
    Split one step's text into ordered text/voice/image segments.

    The scanner has three states: outside a span, inside <voice>, inside <image>.
    Inside a span, markers of any other kind are dropped and the first matching
    closer ends the span. A stray closer outside a span is dropped. An
    unterminated span turns its remaining content into plain text.
    """
    text = strip_markup(raw)
    segments: list[Segment] = []
    buffer: list[str] = []
    state: str | None = None  # None = outside, else the open tag
    pos = 0

    def flush_text() -> None:
        chunk = "".join(buffer).strip()
        buffer.clear()
        if chunk:
            segments.append(Segment("text", chunk))

    while pos < len(text):
        marker = _marker_at(text, pos)
        if marker is None:
            buffer.append(text[pos])
            pos += 1
            continue

        kind, tag = marker
        pos += len(tag) + (2 if kind == "open" else 3)
        if state is None:
            if kind == "open":
                flush_text()
                state = tag
        elif kind == "close" and tag == state:
            segments.append(Segment(state, "".join(buffer).strip()))
            buffer.clear()
            state = None

    flush_text()
    return segments


_RE_CODE_FENCE = re.compile(r"```[^\n`]*\n?([\s\S]*?)```")
_RE_INLINE_CODE = re.compile(r"`([^`]+)`")
_RE_HEADER = re.compile(r"^(#{1,6})\s+(.+)$", re.M)
_RE_BOLD = re.compile(r"\*\*(.+?)\*\*")
_RE_QUOTE = re.compile(r"^\s*>\s+(.+)$", re.M)
_RE_BULLET = re.compile(r"^\s*[-*+]\s+(.+)$", re.M)
_RE_NUMBERED = re.compile(r"^\s*\d+\.\s+(.+)$", re.M)
_RE_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_RE_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_RE_BLANKS = re.compile(r"\n{3,}")


def remove_markdown(text: str) -> str:
    """Map markdown to plain text with the emoji conventions LINE users see."""
    text = _RE_CODE_FENCE.sub(lambda m: m.group(1), text)
    text = _RE_INLINE_CODE.sub(r"\1", text)
    text = _RE_HEADER.sub(r"📌 \2", text)
    text = _RE_BOLD.sub(r"\1", text)
    text = _RE_QUOTE.sub(r"💬 \1", text)
    text = _RE_BULLET.sub(r"🔹 \1", text)
    text = _RE_NUMBERED.sub(r"ℹ️ \1", text)
    text = _RE_IMAGE.sub(r"🖼️ \1", text)
    text = _RE_LINK.sub(r"\1 🔗 (\2)", text)
    text = _RE_BLANKS.sub("\n\n", text)
    return text.strip()


@dataclass
class RenderPlan:
    """Segments merged across steps, ready for media synthesis."""

    text: str = ""
    narration: str = ""
    image_prompts: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.text or self.narration or self.image_prompts)


def render_steps(steps: list[Step]) -> RenderPlan:
    """Deduplicate steps, parse them and merge segments by type."""
    texts: list[str] = []
    voices: list[str] = []
    images: list[str] = []
    for step in dedupe_steps(steps):
        for segment in parse_segments(step.text):
            if segment.type == "text":
                cleaned = remove_markdown(segment.content)
                if cleaned:
                    texts.append(cleaned)
            elif segment.type == "voice":
                if segment.content:
                    voices.append(segment.content)
            elif segment.type == "image":
                if segment.content:
                    images.append(segment.content)
    return RenderPlan(text="\n\n".join(texts), narration=" ".join(voices), image_prompts=images)
