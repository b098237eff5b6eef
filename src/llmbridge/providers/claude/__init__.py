"""Anthropic Claude provider."""

from .adapter import ClaudeProvider

__all__ = ["ClaudeProvider"]
