"""Chat channels."""

from lio_agent.channels.base import BaseChannel
from lio_agent.channels.line import LineChannel
from lio_agent.channels.line_api import LineApiError, LineMessagingClient

__all__ = ["BaseChannel", "LineChannel", "LineApiError", "LineMessagingClient"]
