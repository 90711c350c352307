import asyncio
from typing import Any

import pytest
from pydantic import Field

from lio_agent.agent.context import ContextBuilder
from lio_agent.agent.generator import STOP_CEILING, STOP_FINAL, GenerationError, ToolAugmentedGenerator
from lio_agent.agent.tools.base import Tool, ToolArgs
from lio_agent.agent.tools.registry import ToolRegistry
from lio_agent.providers.base import LLMProvider, LLMResponse, StructuredOutputError, ToolCallRequest


class _RemindArgs(ToolArgs):
    name: str = Field(min_length=1)
    minutes: int


class _RemindTool(Tool):
    args_model = _RemindArgs

    def __init__(self):
        self.calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "remind"

    @property
    def description(self) -> str:
        return "Set a reminder."

    async def execute(self, name: str, minutes: int, **kwargs: Any) -> str:
        self.calls.append({"name": name, "minutes": minutes})
        return f"ok:{name}:{minutes}"


class ScriptedProvider(LLMProvider):
    def __init__(self, responses: list[LLMResponse], repairs: list[Any] | None = None):
        super().__init__()
        self.responses = list(responses)
        self.repairs = list(repairs or [])
        self.chat_calls: list[list[dict[str, Any]]] = []
        self.structured_calls: list[list[dict[str, Any]]] = []

    async def chat(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7, **options):
        self.chat_calls.append(list(messages))
        return self.responses.pop(0)

    async def structured(self, messages, schema, name="result", model=None, temperature=0.0):
        self.structured_calls.append(messages)
        item = self.repairs.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get_default_model(self) -> str:
        return "dummy-model"


def _call(name: str, arguments: dict[str, Any], call_id: str = "call-1", raw: str = "") -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=arguments, raw_arguments=raw)


def _run(provider: ScriptedProvider, tool: _RemindTool, max_steps: int = 20):
    registry = ToolRegistry()
    registry.register(tool)
    generator = ToolAugmentedGenerator(provider, ContextBuilder(), max_steps=max_steps)
    return asyncio.run(generator.generate("system", [], "幫我設定提醒", registry))


def test_generator_plain_answer_is_final():
    provider = ScriptedProvider([LLMResponse(content="你好！")])
    outcome = _run(provider, _RemindTool())

    assert outcome.stop_reason == STOP_FINAL
    assert [s.text for s in outcome.steps] == ["你好！"]
    assert outcome.turns == 1


def test_generator_executes_valid_call_and_feeds_result_back():
    tool = _RemindTool()
    provider = ScriptedProvider(
        [
            LLMResponse(content="", tool_calls=[_call("remind", {"name": "開會", "minutes": 30})]),
            LLMResponse(content="已設定"),
        ]
    )

    outcome = _run(provider, tool)

    assert tool.calls == [{"name": "開會", "minutes": 30}]
    assert outcome.steps[0].tool_results[0].result == "ok:開會:30"
    second_turn = provider.chat_calls[1]
    assert second_turn[-1]["role"] == "tool"
    assert second_turn[-1]["content"] == "ok:開會:30"
    assert outcome.stop_reason == STOP_FINAL


def test_generator_drops_unknown_tool_without_repair():
    tool = _RemindTool()
    provider = ScriptedProvider(
        [
            LLMResponse(
                content="",
                tool_calls=[
                    _call("teleport", {"to": "moon"}, "call-x"),
                    _call("remind", {"name": "喝水", "minutes": 5}, "call-y"),
                ],
            ),
            LLMResponse(content="完成"),
        ]
    )

    outcome = _run(provider, tool)

    assert outcome.dropped_calls == ["teleport"]
    assert provider.structured_calls == []
    assert [c.name for c in outcome.steps[0].tool_calls] == ["remind"]
    assert tool.calls == [{"name": "喝水", "minutes": 5}]


def test_generator_repairs_invalid_arguments_once():
    tool = _RemindTool()
    provider = ScriptedProvider(
        [
            LLMResponse(content="", tool_calls=[_call("remind", {"name": "報告", "minutes": "soon"})]),
            LLMResponse(content="好了"),
        ],
        repairs=[{"name": "報告", "minutes": 15}],
    )

    outcome = _run(provider, tool)

    assert outcome.repaired_calls == ["remind"]
    assert tool.calls == [{"name": "報告", "minutes": 15}]
    prompt = provider.structured_calls[0][0]["content"]
    assert 'The model tried to call the tool "remind" with the following arguments:' in prompt
    assert "The tool accepts the following schema:" in prompt
    assert prompt.endswith("Please fix the arguments.")


def test_generator_repairs_unparseable_json_arguments():
    tool = _RemindTool()
    provider = ScriptedProvider(
        [
            LLMResponse(content="", tool_calls=[_call("remind", {}, raw='{"name": "x", minutes: 3')]),
            LLMResponse(content="ok"),
        ],
        repairs=[{"name": "x", "minutes": 3}],
    )

    outcome = _run(provider, tool)

    assert tool.calls == [{"name": "x", "minutes": 3}]
    assert '{"name": "x", minutes: 3' in provider.structured_calls[0][0]["content"]
    assert outcome.stop_reason == STOP_FINAL


def test_generator_failed_repair_feeds_error_result():
    tool = _RemindTool()
    provider = ScriptedProvider(
        [
            LLMResponse(content="", tool_calls=[_call("remind", {"minutes": "later"})]),
            LLMResponse(content="抱歉，設定失敗"),
        ],
        repairs=[StructuredOutputError("still broken")],
    )

    outcome = _run(provider, tool)

    assert tool.calls == []
    result = outcome.steps[0].tool_results[0].result
    assert result.startswith("Error: invalid arguments for remind")
    assert provider.chat_calls[1][-1]["content"] == result


def test_generator_stops_at_step_ceiling():
    responses = [
        LLMResponse(content="", tool_calls=[_call("remind", {"name": "a", "minutes": 1}, f"c{i}")])
        for i in range(3)
    ]
    outcome = _run(ScriptedProvider(responses), _RemindTool(), max_steps=3)

    assert outcome.stop_reason == STOP_CEILING
    assert outcome.hit_ceiling is True
    assert outcome.turns == 3
    assert len(outcome.steps) == 3


def test_generator_raises_on_provider_error():
    provider = ScriptedProvider([LLMResponse(content="Error calling LLM: 500", finish_reason="error")])

    with pytest.raises(GenerationError):
        _run(provider, _RemindTool())
