"""Agent core module."""

from lio_agent.agent.api import Agent
from lio_agent.agent.context import ContextBuilder
from lio_agent.agent.loop import AgentLoop
from lio_agent.agent.pipeline import ReplyPipeline

__all__ = ["Agent", "AgentLoop", "ContextBuilder", "ReplyPipeline"]
