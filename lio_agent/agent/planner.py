"""Planning phase: one schema-constrained call that yields hidden reasoning steps."""

from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from lio_agent.agent.context import ContextBuilder
from lio_agent.providers.base import LLMProvider, StructuredOutputError
from lio_agent.store.models import Content, ConversationMessage

PLANNING_PROMPT = """您是一個連鎖思考（Chain-of-thought reasoning）生成器。您的任務是分析對話上下文、新的用戶訊息和訊息歷史，為 AI 的下一個回應創建詳細計畫。確保計畫深思熟慮、全面且符合用戶的需求。

請生成包含以下欄位的 JSON 物件：
- "thoughts"：代表您逐步推理的字串陣列。每個想法都應該詳細，並可在必要時包含特定行動，如呼叫工具。例如：1. 分析用戶的訊息，2. 分解關鍵問題，3. 考慮系統提示和規範，4. 探索可能方法，5. 驗證回應能完全解決問題，6. 計畫如何回覆或呼叫哪些工具。

請不要讓用戶感到不知所措，避免在單個訊息中提出過多問題。不要在 JSON 之外生成任何給用戶的回應，您的輸出僅是一個計畫。

系統提示（僅供參考）：
<systemPrompt>
{system_prompt}
</systemPrompt>

僅輸出包含欄位 {{ "thoughts" }} 的有效 JSON。"""

REASONING_TEMPLATE = """<think>
根據我的隱藏連鎖思考（Chain-of-thought Reasoning），以下是您回應的計畫：
{thoughts}
</think>
按照此計畫回應與行動。根據上下文需要執行任何行動，如呼叫工具。

"""


class PlanSchema(BaseModel):
    thoughts: list[str] = Field(description="逐步推理，必要時包括回應內容或特定行動如工具呼叫")


@dataclass
class PlanResult:
    """Hidden reasoning steps; never shown to the user, never persisted."""

    thoughts: list[str] = field(default_factory=list)

    def reasoning_block(self) -> str:
        bullets = "\n".join(f"- {t}" for t in self.thoughts) or "-"
        return REASONING_TEMPLATE.format(thoughts=bullets)

    def augment(self, system_prompt: str) -> str:
        """System prompt for generation with the plan prepended."""
        return self.reasoning_block() + system_prompt


class Planner:
    """Issues the single planning call for a turn."""

    def __init__(self, provider: LLMProvider, context: ContextBuilder, model: str | None = None):
        self.provider = provider
        self.context = context
        self.model = model

    async def plan(
        self,
        system_prompt: str,
        history: list[ConversationMessage],
        current_message: Content,
    ) -> PlanResult:
        """
        Produce the plan for the next reply.

        Raises:
            StructuredOutputError: The call failed or did not match the plan schema.
        """
        messages = self.context.build_messages(
            PLANNING_PROMPT.format(system_prompt=system_prompt), history, current_message
        )
        schema: dict[str, Any] = PlanSchema.model_json_schema()
        data = await self.provider.structured(messages, schema=schema, name="plan", model=self.model)
        try:
            plan = PlanSchema.model_validate(data)
        except ValidationError as e:
            raise StructuredOutputError(f"plan does not match schema: {e}") from e

        thoughts = [t.strip() for t in plan.thoughts if t and t.strip()]
        logger.debug(f"Planner produced {len(thoughts)} thoughts")
        return PlanResult(thoughts=thoughts)
