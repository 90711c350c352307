"""Utility functions for lio-agent."""

from lio_agent.utils.helpers import ensure_dir, get_data_path

__all__ = ["ensure_dir", "get_data_path"]
