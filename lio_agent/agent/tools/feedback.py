"""User feedback capture tool."""

from typing import Any

from pydantic import Field

from lio_agent.agent.tools.base import Tool, ToolArgs
from lio_agent.store.base import FeedbackStore
from lio_agent.store.models import Feedback


class FeedbackArgs(ToolArgs):
    feedback: str = Field(min_length=1, description="用戶的反饋或錯誤報告。")


class UserFeedbackTool(Tool):
    """Record feedback or a bug report from the user."""

    args_model = FeedbackArgs

    def __init__(self, store: FeedbackStore, user_id: str):
        self._store = store
        self._user_id = user_id

    @property
    def name(self) -> str:
        return "userFeedback"

    @property
    def description(self) -> str:
        return "用戶反饋或錯誤報告的工具，將用戶的反饋或錯誤報告保存到資料庫。"

    async def execute(self, feedback: str, **kwargs: Any) -> str:
        await self._store.create_feedback(Feedback(user_id=self._user_id, content=feedback))
        return "用戶反饋已成功保存。感謝您的反饋！"
