import asyncio

from lio_agent.agent.generator import GenerationOutcome, Step
from lio_agent.agent.retry import (
    SENTINEL_TEXT,
    RetryController,
    RetryPolicy,
    is_unusable,
)


def _scripted(*outcomes):
    calls = {"count": 0}
    queue = list(outcomes)

    async def _generate() -> GenerationOutcome:
        calls["count"] += 1
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return GenerationOutcome(steps=[Step(t) for t in item], stop_reason="final_answer")

    return _generate, calls


def test_is_unusable_rules():
    assert is_unusable([]) is True
    assert is_unusable([Step("   "), Step("")]) is True
    assert is_unusable([Step("I'm sorry, I don't understand. Please try again.")]) is True
    assert is_unusable([Step("好的"), Step("I'm sorry, I don't understand")]) is False


def test_retry_runs_once_for_usable_output():
    generate, calls = _scripted(["好的，已經幫你安排提醒！"])

    result = asyncio.run(RetryController().run(generate))

    assert calls["count"] == 1
    assert result.attempts == 1
    assert result.fell_back is False
    assert [s.text for s in result.steps] == ["好的，已經幫你安排提醒！"]


def test_retry_runs_twice_then_falls_back_on_empty_output():
    generate, calls = _scripted([], ["  "])

    result = asyncio.run(RetryController().run(generate))

    assert calls["count"] == 2
    assert result.fell_back is True
    assert [s.text for s in result.raw_steps] == [SENTINEL_TEXT]


def test_retry_after_sentinel_reply_accepts_second_attempt():
    generate, calls = _scripted(["I'm sorry, I don't understand. Please try again."], ["明白了"])

    result = asyncio.run(RetryController().run(generate))

    assert calls["count"] == 2
    assert result.attempts == 2
    assert [s.text for s in result.steps] == ["明白了"]


def test_retry_treats_generator_exception_as_empty():
    generate, calls = _scripted(RuntimeError("boom"), ["沒問題"])

    result = asyncio.run(RetryController().run(generate))

    assert calls["count"] == 2
    assert result.fell_back is False
    assert result.outcomes[0].stop_reason == "error"


def test_retry_keeps_raw_steps_for_persistence():
    generate, _ = _scripted(["嗯...", "嗯...", "好"])

    result = asyncio.run(RetryController().run(generate))

    assert [s.text for s in result.raw_steps] == ["嗯...", "嗯...", "好"]
    assert [s.text for s in result.steps] == ["嗯...", "好"]


def test_retry_policy_single_attempt():
    generate, calls = _scripted([])

    result = asyncio.run(RetryController(RetryPolicy(max_attempts=1)).run(generate))

    assert calls["count"] == 1
    assert result.fell_back is True
