"""llmbridge provider adapters — one contract, every LLM backend."""

from collections.abc import Mapping
from typing import Any

from llmbridge.config import ProviderConfig, get_config

from .base import BaseProvider
from .claude import ClaudeProvider

_REGISTRY: dict[str, type[BaseProvider]] = {
    "claude": ClaudeProvider,
    "anthropic": ClaudeProvider,
}


def register_provider(name: str, cls: type[BaseProvider]) -> None:
    if not (isinstance(cls, type) and issubclass(cls, BaseProvider)):
        raise TypeError(f"{cls!r} is not a BaseProvider subclass")
    _REGISTRY[name.lower()] = cls


def available_providers() -> list[str]:
    return sorted(_REGISTRY)


def create_provider(
    name: str,
    config: ProviderConfig | Mapping[str, Any] | str | None = None,
) -> BaseProvider:
    """Instantiate a registered provider; without a config, use the loaded config file."""
    key = name.lower()
    if key not in _REGISTRY:
        raise KeyError(f"Unknown provider {name!r}. Known: {', '.join(available_providers())}")
    if config is None:
        config = get_config().get_provider(key)
    return _REGISTRY[key](config)


__all__ = [
    "BaseProvider",
    "ClaudeProvider",
    "available_providers",
    "create_provider",
    "register_provider",
]
