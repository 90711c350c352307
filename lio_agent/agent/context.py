"""Context builder for assembling Lio's prompts."""

from datetime import datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

from lio_agent.store.models import (
    Content,
    ConversationMessage,
    FilePart,
    ImagePart,
    Task,
    TextPart,
    User,
)

NONE_PLACEHOLDER = "無"
_WEEKDAYS = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")


def format_zh_datetime(value: datetime, with_weekday: bool = False) -> str:
    """Render e.g. "2022年3月17日 星期四 下午2:30"."""
    period = "上午" if value.hour < 12 else "下午"
    hour = value.hour % 12 or 12
    text = f"{value.year}年{value.month}月{value.day}日"
    if with_weekday:
        text += f" {_WEEKDAYS[value.weekday()]}"
    return f"{text} {period}{hour}:{value.minute:02d}"


def format_due(due_at: str | None) -> str:
    if not due_at:
        return NONE_PLACEHOLDER
    try:
        return format_zh_datetime(datetime.fromisoformat(due_at))
    except ValueError:
        return due_at


def _section(label: str, body: str) -> str:
    inner = "\n".join(f"  {line}" if line else "" for line in body.strip("\n").split("\n"))
    return f"<{label}>\n{inner}\n</{label}>"


_CAPABILITIES = """你的能力包括：
1. **任務與日程管理**：新增、更新、刪除任務與會議。請參考 <taskManagement>。
2. **資訊搜集與整理**：搜尋並整理資訊，提供背景資料或建議。請參考 <infoGathering>。
3. **個人化決策支援**：以系統化思考協助使用者做出明智決策。請參考 <decisionMaking>。
4. **智慧提醒設定**：設定和管理自動提醒。請參考 <reminderSetting>。
5. **記憶**：記住使用者告訴你的重要資訊。請參考 <memoryRetrieval>。
6. **使用者回饋**：記錄並回應使用者的建議或問題。請參考 <userFeedback>。"""

_TASK_RULES = """- **任務屬性**：標題（title）、描述（description）、到期時間（dueAt，格式 YYYY-MM-DD HH:mm，直接使用台北時間，可留空）、優先程度（priority：low、medium、high、urgent，和使用者說的時候用繁體中文）。
- **行為**：
  - 使用者說要做什麼事時（例如開會、寫報告），你應該記錄下來。
  - 不要詢問使用者標題或描述要填什麼，自己判斷並確認。
  - 支援批量操作，例如一次新增多個任務（addTasks）。
  - 新增任務後，可以詢問是否需要設定提醒。
  - 如果使用者很明確地告訴你要做什麼，立即執行，不需要再次確認。
- **相關工具**：getTasks、addTask、addTasks、updateTask、deleteTask。"""

_INFO_GATHERING = """- 使用 searchWeb 搜尋資料，使用 loadWebContent 讀取網頁，使用 loadFileContent 讀取使用者上傳的檔案。
- 以簡潔方式呈現重點。"""

_MEMORY = """- 使用者告訴你任何重要資訊時，使用 createMemory 記錄下來。
- 需要時主動使用 retrieveMemories 取得相關記憶，提供更個人化的支援。
- 使用 deleteMemory 刪除使用者要求忘記的內容。"""

_DECISION = """- 協助設定優先順序、評估重要性、權衡利弊或安排任務順序。
- 提供簡潔的建議，使用者需要時再解釋推理過程。"""

_FEEDBACK = """- 使用 userFeedback 記錄使用者對 {name} 的建議或錯誤報告。
- 確認反饋已記錄，並感謝使用者。"""

_REMINDERS = """- **提醒屬性**：名稱（name）、時間表（schedule）、類型（type：one-time 或 cron）、訊息內容（message）。
- cron 表達式有五個欄位：分、時、日、月、週，例如 "0 9 * * 1-5" 代表週一至週五早上 9 點。
- 單次提醒使用具體時間，例如 "2025-03-18 15:00"。直接使用台北時間。
- 最小單位為五分鐘；如果使用者要求的時間不是五分鐘的倍數（如 10:33），請調整為最接近的五分鐘（如 10:35），並告訴使用者。
- **相關工具**：scheduleJob、removeJob、getJobs。"""

_GUIDELINES = """- **語氣**：專業、友善、簡潔。
- **互動**：主動提供幫助，透過引導式問題了解需求，但一次不要問太多問題。
- **工具**：工具失敗時告訴使用者你的困難並提供其他幫助；不要說出工具名稱或 ID 等內部細節；工具結果不要直接複製貼上，應轉換成易讀的方式，時間一律以台北時間呈現。
- **輸出**：你的輸出不能像是機器生成的，要有個性且人性化。"""

_FORMAT = """- 你可以處理文字、圖片、貼圖、檔案、語音與影片等訊息。
- **文字**：支援純文字與簡單的 Markdown。
- **圖片**：想用圖片回覆時，使用 <image>...</image> 標籤，並在標籤中描述要生成的圖片內容；系統會生成圖片並刪除標籤。
- **語音**：想用語音回覆時，使用 <voice>...</voice> 標籤，並在標籤中寫下要說的內容；系統會生成語音並刪除標籤。"""

_EXAMPLES = """user: 我明天下午有個部門會議。
{name}: 好的，請問會議是幾點？需要準備什麼嗎？我可以幫您安排日程並設定提醒。
user: 2 點開始，我需要準備一份簡報。
{name}:（新增任務「準備會議簡報」，截止：明天下午 1 點，優先級：中）
{name}: 已新增任務「準備會議簡報」（截止：明天下午一點，優先級：中）。需要我在明天上午 10 點提醒您嗎？"""


class ContextBuilder:
    """
    Builds the context (system prompt + messages) for Lio.

    The system prompt carries the user's profile, open tasks and the current
    time in a fixed timezone. Missing values always render as an explicit
    placeholder.
    """

    def __init__(
        self,
        timezone: str = "Asia/Taipei",
        default_language: str = "繁體中文",
        assistant_name: str = "Lio",
        clock: Callable[[], datetime] | None = None,
    ):
        self.timezone = ZoneInfo(timezone)
        self.default_language = default_language
        self.assistant_name = assistant_name
        self._clock = clock or (lambda: datetime.now(self.timezone))

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            return current.replace(tzinfo=self.timezone)
        return current.astimezone(self.timezone)

    def render_open_tasks(self, tasks: list[Task]) -> str:
        lines = [
            f"- {t.title or NONE_PLACEHOLDER}  {t.description or NONE_PLACEHOLDER}"
            f"（{t.priority}）截止日期：{format_due(t.due_at)}"
            for t in tasks
            if not t.completed
        ]
        return "\n".join(lines) if lines else f"- {NONE_PLACEHOLDER}"

    def build_system_prompt(self, user: User, tasks: list[Task]) -> str:
        """
        Build the system prompt for a user.

        Args:
            user: The user being served.
            tasks: The user's tasks; completed ones are left out.

        Returns:
            The complete system prompt.
        """
        name = self.assistant_name
        now = format_zh_datetime(self.now(), with_weekday=True)
        intro = (
            f"你是 {name}，一個專業、友善且高效的專屬秘書，透過 LINE 與使用者互動。"
            "你的主要任務是協助使用者管理日常事務、提供個人化建議，並提升生活與工作效率。\n\n"
            "使用者資訊在 <userInfo> 中，你的能力在 <capabilities> 中。"
            "請遵守 <guidelines> 中的行為準則，回覆格式請參考 <format>。"
        )
        sections = [
            intro,
            _section("userInfo", f"- **名稱**：{user.display_name or NONE_PLACEHOLDER}"),
            _section(
                "currentTime",
                f"現在是台北時間 {now}。請以此時間為準。\n"
                "使用工具時皆直接使用台北時間，不需要轉換，包含提醒時間、任務截止時間與 Cron 表達式。",
            ),
            _section("capabilities", _CAPABILITIES),
            _section(
                "taskManagement",
                _TASK_RULES + "\n- **目前尚未完成的任務**：\n" + self.render_open_tasks(tasks),
            ),
            _section("infoGathering", _INFO_GATHERING),
            _section("memoryRetrieval", _MEMORY),
            _section("decisionMaking", _DECISION),
            _section("userFeedback", _FEEDBACK.format(name=name)),
            _section("reminderSetting", _REMINDERS),
            _section("guidelines", _GUIDELINES),
            _section("format", _FORMAT),
            _section("examples", _EXAMPLES.format(name=name)),
            _section(
                "default_language",
                f"Speak in {self.default_language} if the user does not specify a language.",
            ),
        ]
        return "\n\n".join(sections)

    def to_llm_content(self, content: Content) -> str | list[dict[str, Any]]:
        """Convert stored content into OpenAI-style message content."""
        if isinstance(content, str):
            return content
        parts: list[dict[str, Any]] = []
        for part in content:
            if isinstance(part, TextPart):
                parts.append({"type": "text", "text": part.text})
            elif isinstance(part, ImagePart):
                parts.append({"type": "image_url", "image_url": {"url": part.url}})
            elif isinstance(part, FilePart):
                parts.append(
                    {"type": "file", "file": {"file_id": part.url, "format": part.mime_type}}
                )
            else:
                raise TypeError(f"unknown content part: {part!r}")
        return parts

    def history_messages(self, history: list[ConversationMessage]) -> list[dict[str, Any]]:
        """Stored rows (oldest-first) as LLM messages."""
        messages = []
        for row in history:
            content = row.content
            if row.role == "assistant" and not isinstance(content, str):
                content = "\n".join(p.text for p in content if isinstance(p, TextPart))
            messages.append({"role": row.role, "content": self.to_llm_content(content)})
        return messages

    def build_messages(
        self,
        system_prompt: str,
        history: list[ConversationMessage],
        current_message: Content,
    ) -> list[dict[str, Any]]:
        """
        Build the complete message list for an LLM call.

        Args:
            system_prompt: System prompt placed first.
            history: Previous conversation rows, oldest first.
            current_message: The new user message.

        Returns:
            List of messages including system prompt.
        """
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(self.history_messages(history))
        messages.append({"role": "user", "content": self.to_llm_content(current_message)})
        return messages

    def add_tool_result(
        self,
        messages: list[dict[str, Any]],
        tool_call_id: str,
        tool_name: str,
        result: str,
    ) -> list[dict[str, Any]]:
        """Add a tool result to the message list."""
        messages.append(
            {
                "role": "tool",
                "tool_call_id": tool_call_id,
                "name": tool_name,
                "content": result,
            }
        )
        return messages

    def add_assistant_message(
        self,
        messages: list[dict[str, Any]],
        content: str | None,
        tool_calls: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Add an assistant message to the message list."""
        msg: dict[str, Any] = {"role": "assistant", "content": content or ""}
        if tool_calls:
            msg["tool_calls"] = tool_calls
        messages.append(msg)
        return messages
