"""Reply orchestration for one inbound message."""

from dataclasses import dataclass
from typing import Callable

from loguru import logger

from lio_agent.agent.context import ContextBuilder
from lio_agent.agent.generator import Step, ToolAugmentedGenerator
from lio_agent.agent.media import MediaSynthesizer
from lio_agent.agent.persistence import PersistenceWriter
from lio_agent.agent.planner import PlanResult, Planner
from lio_agent.agent.reply import DispatchResult, ReplyAssembler, ReplyHandle
from lio_agent.agent.retry import RetryController, RetryResult
from lio_agent.agent.segments import RenderPlan, render_steps
from lio_agent.agent.tools.registry import ToolRegistry
from lio_agent.bus.events import InboundMessage
from lio_agent.store.base import MessageStore, TaskStore
from lio_agent.store.models import ConversationMessage, Task, User

ERROR_REPLY = "⚠️ 我剛剛遇到了一點小問題 🛠️，讓我重新啟動一下，請稍後再試。"

ToolFactory = Callable[[User, str], ToolRegistry]


@dataclass
class TurnResult:
    plan: PlanResult | None
    retry: RetryResult
    render: RenderPlan
    dispatch: DispatchResult
    persisted_steps: int


class ReplyPipeline:
    """
    Runs one turn end to end.

    History and open tasks are loaded, the user's message is stored, the
    planner runs once, generation runs under the retry policy, the output is
    segmented and synthesized, one reply batch is sent, and the raw assistant
    steps are stored.
    """

    def __init__(
        self,
        *,
        context: ContextBuilder,
        planner: Planner,
        generator: ToolAugmentedGenerator,
        synthesizer: MediaSynthesizer,
        persistence: PersistenceWriter,
        messages: MessageStore,
        tasks: TaskStore,
        tool_factory: ToolFactory,
        retry: RetryController | None = None,
        assembler: ReplyAssembler | None = None,
        history_limit: int = 30,
    ):
        self.context = context
        self.planner = planner
        self.generator = generator
        self.synthesizer = synthesizer
        self.persistence = persistence
        self.messages = messages
        self.tasks = tasks
        self.tool_factory = tool_factory
        self.retry = retry or RetryController()
        self.assembler = assembler or ReplyAssembler()
        self.history_limit = history_limit

    async def _load_history(self, user_id: str) -> list[ConversationMessage]:
        try:
            return await self.messages.get_messages_by_user_id(user_id, limit=self.history_limit)
        except Exception as e:
            logger.error(f"Failed to load history for {user_id}: {e}")
            return []

    async def _load_tasks(self, user_id: str) -> list[Task]:
        try:
            return await self.tasks.get_tasks_by_user_id(user_id)
        except Exception as e:
            logger.error(f"Failed to load tasks for {user_id}: {e}")
            return []

    async def run(self, user: User, message: InboundMessage, handle: ReplyHandle) -> TurnResult:
        history = await self._load_history(user.id)
        tasks = await self._load_tasks(user.id)
        await self.persistence.record_user_message(user.id, message.content)

        system_prompt = self.context.build_system_prompt(user, tasks)
        plan: PlanResult | None = None
        try:
            plan = await self.planner.plan(system_prompt, history, message.content)
        except Exception as e:
            logger.error(f"Planning failed for {user.id}: {e}")

        if plan is None:
            apology = Step(text=ERROR_REPLY)
            result = RetryResult(raw_steps=[apology], steps=[apology], attempts=0, fell_back=True)
        else:
            tools = self.tool_factory(user, message.session_key)
            prompt = plan.augment(system_prompt)
            result = await self.retry.run(
                lambda: self.generator.generate(prompt, history, message.content, tools)
            )
        logger.info(
            f"Generated {len(result.raw_steps)} step(s) for {user.id} "
            f"in {result.attempts} attempt(s)"
        )

        render = render_steps(result.steps)
        media = await self.synthesizer.synthesize(
            render.narration,
            render.image_prompts,
            voice=user.voice,
            prefix=message.reply_token or user.id,
        )
        batch = self.assembler.assemble(
            render.text, media.audio, media.images, quote_token=message.quote_token
        )
        dispatch = await self.assembler.dispatch(handle, batch)

        persisted = 0
        if dispatch.status != "failed":
            persisted = await self.persistence.record_assistant_steps(user.id, result.raw_steps)
        logger.info(
            f"Reply for {user.id}: {dispatch.status}, {len(dispatch.messages)} message(s), "
            f"{persisted} step(s) stored"
        )
        return TurnResult(
            plan=plan,
            retry=result,
            render=render,
            dispatch=dispatch,
            persisted_steps=persisted,
        )
