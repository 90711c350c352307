"""Retry-on-empty policy around the tool-augmented generator."""

from dataclasses import dataclass, field
from typing import Awaitable, Callable

from loguru import logger

from lio_agent.agent.generator import GenerationOutcome, Step

SENTINEL_TEXT = "I'm sorry, I don't understand. Please try again."
SENTINEL_MARKER = "I'm sorry, I don't understand"


def dedupe_steps(steps: list[Step]) -> list[Step]:
    """Drop empty steps and steps whose trimmed text repeats an earlier one."""
    seen: set[str] = set()
    unique: list[Step] = []
    for step in steps:
        key = step.text.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(step)
    return unique


def is_unusable(steps: list[Step]) -> bool:
    """True when deduplicated output is empty or opens with the sentinel apology."""
    unique = dedupe_steps(steps)
    return not unique or SENTINEL_MARKER in unique[0].text


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    is_retryable: Callable[[list[Step]], bool] = is_unusable


@dataclass
class RetryResult:
    raw_steps: list[Step]  # Steps of the accepted attempt, before dedup
    steps: list[Step]  # Deduplicated steps for rendering
    attempts: int
    fell_back: bool = False
    outcomes: list[GenerationOutcome] = field(default_factory=list)


class RetryController:
    """Re-runs generation while the policy deems the output unusable, then falls back."""

    def __init__(self, policy: RetryPolicy | None = None, fallback_text: str = SENTINEL_TEXT):
        self.policy = policy or RetryPolicy()
        self.fallback_text = fallback_text

    async def run(self, generate: Callable[[], Awaitable[GenerationOutcome]]) -> RetryResult:
        attempts = 0
        outcomes: list[GenerationOutcome] = []
        while attempts < max(1, self.policy.max_attempts):
            attempts += 1
            try:
                outcome = await generate()
            except Exception as e:
                logger.error(f"Generation attempt {attempts} failed: {e}")
                outcome = GenerationOutcome(steps=[], stop_reason="error")
            outcomes.append(outcome)

            if not self.policy.is_retryable(outcome.steps):
                return RetryResult(
                    raw_steps=outcome.steps,
                    steps=dedupe_steps(outcome.steps),
                    attempts=attempts,
                    outcomes=outcomes,
                )
            logger.warning(f"Generation attempt {attempts} produced no usable reply")

        apology = Step(text=self.fallback_text)
        return RetryResult(
            raw_steps=[apology],
            steps=[apology],
            attempts=attempts,
            fell_back=True,
            outcomes=outcomes,
        )
