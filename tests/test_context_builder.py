from datetime import datetime
from zoneinfo import ZoneInfo

from lio_agent.agent.context import ContextBuilder, format_zh_datetime
from lio_agent.agent.planner import PlanResult
from lio_agent.store.models import ConversationMessage, FilePart, ImagePart, Task, TextPart, User


def _builder() -> ContextBuilder:
    fixed = datetime(2022, 3, 17, 14, 30, tzinfo=ZoneInfo("Asia/Taipei"))
    return ContextBuilder(clock=lambda: fixed)


def test_format_zh_datetime():
    value = datetime(2022, 3, 17, 14, 30)
    assert format_zh_datetime(value, with_weekday=True) == "2022年3月17日 星期四 下午2:30"
    assert format_zh_datetime(datetime(2022, 3, 17, 0, 5)) == "2022年3月17日 上午12:05"


def test_system_prompt_uses_placeholders_for_missing_values():
    prompt = _builder().build_system_prompt(User(line_user_id="U1", display_name=""), [])

    assert "- **名稱**：無" in prompt
    assert "- 無" in prompt
    assert "2022年3月17日 星期四 下午2:30" in prompt
    assert "<format>" in prompt and "<voice>" in prompt and "<image>" in prompt
    assert "Speak in 繁體中文" in prompt


def test_system_prompt_lists_only_open_tasks():
    tasks = [
        Task(user_id="u", title="寫報告", description="季度報告", priority="high", due_at="2022-03-18 10:00"),
        Task(user_id="u", title="已完成", description="done", completed=True),
        Task(user_id="u", title="買牛奶", description="", priority="low"),
    ]

    prompt = _builder().build_system_prompt(User(line_user_id="U1", display_name="小明"), tasks)

    assert "- **名稱**：小明" in prompt
    assert "- 寫報告  季度報告（high）截止日期：2022年3月18日 上午10:00" in prompt
    assert "- 買牛奶  無（low）截止日期：無" in prompt
    assert "已完成" not in prompt


def test_build_messages_converts_multimodal_content():
    history = [
        ConversationMessage(user_id="u", role="user", content=[TextPart("hi")]),
        ConversationMessage(user_id="u", role="assistant", content="hello"),
    ]
    current = [TextPart("看這個"), ImagePart("https://img/1.png"), FilePart("https://f/1.pdf", "application/pdf")]

    messages = _builder().build_messages("SYS", history, current)

    assert messages[0] == {"role": "system", "content": "SYS"}
    assert messages[1] == {"role": "user", "content": [{"type": "text", "text": "hi"}]}
    assert messages[2] == {"role": "assistant", "content": "hello"}
    assert messages[3]["content"][1] == {"type": "image_url", "image_url": {"url": "https://img/1.png"}}
    assert messages[3]["content"][2]["file"] == {"file_id": "https://f/1.pdf", "format": "application/pdf"}


def test_plan_result_prepends_reasoning_block():
    prompt = PlanResult(thoughts=["分析訊息", "呼叫 scheduleJob"]).augment("SYSTEM")

    assert prompt.startswith("<think>")
    assert "- 分析訊息\n- 呼叫 scheduleJob" in prompt
    assert prompt.endswith("SYSTEM")
