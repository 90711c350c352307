"""Conversation history writes for a turn."""

from loguru import logger

from lio_agent.agent.generator import Step
from lio_agent.store.base import MessageStore
from lio_agent.store.models import Content, ConversationMessage


class PersistenceWriter:
    """Records the user's message and each raw assistant step; failures are logged only."""

    def __init__(self, messages: MessageStore):
        self.messages = messages

    async def record_user_message(self, user_id: str, content: Content) -> bool:
        try:
            await self.messages.create_message(
                ConversationMessage(user_id=user_id, role="user", content=content)
            )
            return True
        except Exception as e:
            logger.error(f"Failed to store user message for {user_id}: {e}")
            return False

    async def record_assistant_steps(self, user_id: str, steps: list[Step]) -> int:
        """Write one row per non-empty raw step; returns rows written."""
        written = 0
        for step in steps:
            if not step.text.strip():
                continue
            try:
                await self.messages.create_message(
                    ConversationMessage(user_id=user_id, role="assistant", content=step.text)
                )
                written += 1
            except Exception as e:
                logger.error(f"Failed to store assistant step for {user_id}: {e}")
        return written
