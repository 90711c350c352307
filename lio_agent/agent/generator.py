"""Tool-augmented generation: a bounded multi-turn loop with argument repair."""

import json
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from lio_agent.agent.context import ContextBuilder
from lio_agent.agent.tools.registry import ToolArgumentsError, ToolRegistry, UnknownToolError
from lio_agent.providers.base import LLMProvider, StructuredOutputError, ToolCallRequest
from lio_agent.store.models import Content, ConversationMessage

STOP_FINAL = "final_answer"
STOP_CEILING = "step_ceiling"


class GenerationError(RuntimeError):
    """Raised when the model call itself fails."""


@dataclass
class ToolResult:
    tool_call_id: str
    name: str
    result: str


@dataclass
class Step:
    """One generation turn: the model's text plus the tool traffic it caused."""

    text: str
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)


@dataclass
class GenerationOutcome:
    steps: list[Step]
    stop_reason: str
    turns: int = 0
    dropped_calls: list[str] = field(default_factory=list)
    repaired_calls: list[str] = field(default_factory=list)

    @property
    def hit_ceiling(self) -> bool:
        return self.stop_reason == STOP_CEILING


@dataclass
class _PreparedCall:
    request: ToolCallRequest
    error: str | None = None


class ToolAugmentedGenerator:
    """
    Runs the execution phase for a turn.

    Each model turn either answers with text (the loop ends) or requests tool
    calls, which are validated, repaired once when their arguments do not fit
    the tool schema, executed in order, and fed back to the model. Calls that
    name an unknown tool are dropped without repair.
    """

    def __init__(
        self,
        provider: LLMProvider,
        context: ContextBuilder,
        model: str | None = None,
        max_steps: int = 20,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        presence_penalty: float | None = 0.5,
        frequency_penalty: float | None = 0.1,
    ):
        self.provider = provider
        self.context = context
        self.model = model
        self.max_steps = max(1, max_steps)
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.presence_penalty = presence_penalty
        self.frequency_penalty = frequency_penalty

    async def generate(
        self,
        system_prompt: str,
        history: list[ConversationMessage],
        current_message: Content,
        tools: ToolRegistry,
    ) -> GenerationOutcome:
        """
        Run the tool loop until a final answer or the step ceiling.

        Raises:
            GenerationError: The provider reported an error for a model turn.
        """
        messages = self.context.build_messages(system_prompt, history, current_message)
        outcome = GenerationOutcome(steps=[], stop_reason=STOP_CEILING)

        while outcome.turns < self.max_steps:
            outcome.turns += 1
            response = await self.provider.chat(
                messages=messages,
                tools=tools.get_definitions(),
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                presence_penalty=self.presence_penalty,
                frequency_penalty=self.frequency_penalty,
            )
            if response.finish_reason == "error":
                raise GenerationError(response.content or "LLM call failed")

            text = response.content or ""
            if not response.has_tool_calls:
                outcome.steps.append(Step(text=text))
                outcome.stop_reason = STOP_FINAL
                break

            prepared: list[_PreparedCall] = []
            for call in response.tool_calls:
                item = await self._prepare_call(call, tools, outcome)
                if item is not None:
                    prepared.append(item)

            step = Step(text=text, tool_calls=[p.request for p in prepared])
            if not prepared:
                # Every requested tool was unknown; nothing to feed back.
                outcome.steps.append(step)
                outcome.stop_reason = STOP_FINAL
                break

            tool_call_dicts = [
                {
                    "id": p.request.id,
                    "type": "function",
                    "function": {
                        "name": p.request.name,
                        "arguments": json.dumps(p.request.arguments, ensure_ascii=False),
                    },
                }
                for p in prepared
            ]
            messages = self.context.add_assistant_message(messages, text, tool_call_dicts)

            for p in prepared:
                if p.error is not None:
                    result = p.error
                else:
                    logger.debug(
                        f"Executing tool: {p.request.name} with arguments: "
                        f"{json.dumps(p.request.arguments, ensure_ascii=False)}"
                    )
                    result = await tools.execute(p.request.name, p.request.arguments)
                step.tool_results.append(ToolResult(p.request.id, p.request.name, result))
                messages = self.context.add_tool_result(messages, p.request.id, p.request.name, result)

            outcome.steps.append(step)

        if outcome.hit_ceiling:
            logger.warning(f"Tool loop stopped at the step ceiling ({self.max_steps})")
        return outcome

    async def _prepare_call(
        self,
        call: ToolCallRequest,
        tools: ToolRegistry,
        outcome: GenerationOutcome,
    ) -> _PreparedCall | None:
        try:
            if not tools.has(call.name):
                raise UnknownToolError(call.name)
            if call.raw_arguments:
                raise ToolArgumentsError(call.name, {}, "arguments are not a JSON object")
            call.arguments = tools.check_arguments(call.name, call.arguments)
            return _PreparedCall(call)
        except UnknownToolError:
            logger.warning(f"Dropping call to unknown tool: {call.name}")
            outcome.dropped_calls.append(call.name)
            return None
        except ToolArgumentsError as e:
            logger.warning(f"Repairing arguments for {call.name}: {e.detail}")
            repaired = await self.repair_arguments(call, tools)
            if repaired is None:
                return _PreparedCall(
                    call,
                    error=f"Error: invalid arguments for {call.name} could not be repaired ({e.detail})",
                )
            call.arguments = repaired
            outcome.repaired_calls.append(call.name)
            return _PreparedCall(call)

    async def repair_arguments(
        self, call: ToolCallRequest, tools: ToolRegistry
    ) -> dict[str, Any] | None:
        """
        Ask the model once to re-emit arguments that satisfy the tool schema.

        Returns:
            Validated arguments, or None when the corrected arguments still fail.
        """
        tool = tools.get(call.name)
        if tool is None:
            return None
        offending = call.raw_arguments or json.dumps(call.arguments, ensure_ascii=False)
        prompt = "\n".join(
            [
                f'The model tried to call the tool "{call.name}" with the following arguments:',
                offending,
                "The tool accepts the following schema:",
                json.dumps(tool.parameters, ensure_ascii=False),
                "Please fix the arguments.",
            ]
        )
        try:
            fixed = await self.provider.structured(
                [{"role": "user", "content": prompt}],
                schema=tool.parameters,
                name=call.name,
                model=self.model,
            )
            return tools.check_arguments(call.name, fixed)
        except (StructuredOutputError, ToolArgumentsError) as e:
            logger.warning(f"Argument repair failed for {call.name}: {e}")
            return None
