"""Lio - a LINE secretary assistant that plans, calls tools and replies in text, voice and images."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("lio-agent")
except PackageNotFoundError:
    __version__ = "0.1.0"

__logo__ = "🦁"
__brand__ = "lio-agent"
