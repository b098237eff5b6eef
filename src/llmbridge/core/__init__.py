"""llmbridge core types — messages and provider metadata."""

from .types import Capabilities, ChatMessage, ProviderInfo, Role, coerce_messages

__all__ = [
    "Capabilities",
    "ChatMessage",
    "ProviderInfo",
    "Role",
    "coerce_messages",
]
