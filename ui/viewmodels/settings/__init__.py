"""Settings subsystem - Chat preferences."""

from .chat_preferences import ChatPreferences, parse_platform

__all__ = [
    "ChatPreferences",
    "parse_platform",
]
