"""
llmbridge — one contract for every LLM backend.

Construct a provider, then complete, stream, or chat. Retry with backoff,
token-bucket rate limiting, and capability detection come with the base class.

Quick start::

    from llmbridge import ClaudeProvider

    provider = ClaudeProvider({"model": "claude-sonnet-4-20250514",
                               "rate_limit": {"tokens_per_interval": 50, "interval": "minute"}})
    text = await provider.generate_with_retry("Summarize this diff")
    async for chunk in provider.stream_with_progress("Explain", on_progress=print):
        ...
"""

__version__ = "0.1.0"

from llmbridge.config import LLMBridgeConfig, ProviderConfig, RateLimitPolicy, get_config, load_config
from llmbridge.core.types import Capabilities, ChatMessage, ProviderInfo, Role
from llmbridge.errors import (
    AuthenticationError,
    ErrorCode,
    InvalidRequestError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    format_error,
)
from llmbridge.providers import (
    BaseProvider,
    ClaudeProvider,
    available_providers,
    create_provider,
    register_provider,
)
from llmbridge.resilience import RateLimiter, backoff_delay, get_metrics

__all__ = [
    # Types
    "Capabilities",
    "ChatMessage",
    "ProviderInfo",
    "Role",
    # Config
    "LLMBridgeConfig",
    "ProviderConfig",
    "RateLimitPolicy",
    "get_config",
    "load_config",
    # Errors
    "AuthenticationError",
    "ErrorCode",
    "InvalidRequestError",
    "ModelNotFoundError",
    "ProviderError",
    "RateLimitError",
    "ServiceUnavailableError",
    "format_error",
    # Providers
    "BaseProvider",
    "ClaudeProvider",
    "available_providers",
    "create_provider",
    "register_provider",
    # Resilience
    "RateLimiter",
    "backoff_delay",
    "get_metrics",
]
