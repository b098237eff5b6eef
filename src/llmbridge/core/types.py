"""
Shared types — messages in, provider metadata out.

Chat messages are accepted either as ChatMessage instances or as plain
``{"role": ..., "content": ...}`` dicts; both are coerced to ChatMessage.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """One turn of a conversation."""
    role: str = Field(..., min_length=1)
    content: str

    @property
    def display_role(self) -> str:
        return self.role[0].upper() + self.role[1:]

    def render(self) -> str:
        return f"{self.display_role}: {self.content}"


def coerce_messages(messages: Iterable[ChatMessage | Mapping[str, Any]]) -> list[ChatMessage]:
    result = []
    for msg in messages:
        if isinstance(msg, ChatMessage):
            result.append(msg)
        else:
            result.append(ChatMessage.model_validate(dict(msg)))
    return result


# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------

class Capabilities(BaseModel):
    streaming: bool = False
    function_calling: bool = False
    chat: bool = False
    vision: bool = False


class ProviderInfo(BaseModel):
    """Snapshot returned by BaseProvider.get_info()."""
    name: str
    model: str
    max_tokens: int
    temperature: float
    capabilities: Capabilities = Field(default_factory=Capabilities)
