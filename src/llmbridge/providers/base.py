"""
Base provider — abstract class all LLM backends inherit from.

Subclasses implement complete / stream / get_default_model /
get_api_key_env_var. Everything else (config resolution, retry with
backoff, chat flattening, streaming with progress, rate limiting,
capability flags) is supplied here and may be overridden.
"""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from contextlib import aclosing
from typing import Any, TypeVar

import httpx

from llmbridge.config import ProviderConfig
from llmbridge.core.types import Capabilities, ChatMessage, ProviderInfo, coerce_messages
from llmbridge.errors import ProviderError, format_error
from llmbridge.resilience.metrics import get_metrics
from llmbridge.resilience.rate_limiter import RateLimiter
from llmbridge.resilience.retry import backoff_delay

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7


class BaseProvider(ABC):
    """
    Abstract base for all provider adapters.

    Accepts a ProviderConfig, a mapping of the same fields, or (legacy) a bare
    API key string. Each field resolves as: explicit config value, then the
    provider default accessor, then (API key only) the provider's env var.
    """

    name: str = "base"
    base_url: str | None = None

    def __init__(self, config: ProviderConfig | Mapping[str, Any] | str | None = None):
        self.config = ProviderConfig.from_value(config)

        self.api_key: str | None = self.config.api_key or os.getenv(self.get_api_key_env_var())
        self.model: str = self.config.model or self.get_default_model()
        self.max_tokens: int = self.config.max_tokens or self.get_max_tokens()
        self.temperature: float = (
            self.config.temperature if self.config.temperature is not None else self.get_default_temperature()
        )

        self.rate_limiter: RateLimiter | None = None
        if self.config.rate_limit is not None:
            self.rate_limiter = RateLimiter(self.config.rate_limit)
            logger.info(f"{self.get_name()}: rate limiter enabled {self.rate_limiter!r}")

        self._client: httpx.AsyncClient | None = None

    # --- Abstract ---

    @abstractmethod
    async def complete(self, prompt: str, **options: Any) -> str:
        raise NotImplementedError(f"{self.__class__.__name__} must implement complete()")

    @abstractmethod
    async def stream(self, prompt: str, **options: Any) -> AsyncIterator[str]:
        raise NotImplementedError(f"{self.__class__.__name__} must implement stream()")
        yield  # makes this an async generator

    @abstractmethod
    def get_default_model(self) -> str:
        raise NotImplementedError(f"{self.__class__.__name__} must implement get_default_model()")

    @abstractmethod
    def get_api_key_env_var(self) -> str:
        raise NotImplementedError(f"{self.__class__.__name__} must implement get_api_key_env_var()")

    # --- Overridable defaults ---

    def get_max_tokens(self) -> int:
        return DEFAULT_MAX_TOKENS

    def get_default_temperature(self) -> float:
        return DEFAULT_TEMPERATURE

    def format_error(self, error: BaseException) -> ProviderError:
        return format_error(error, unknown_is_operational=self.config.retry_unknown_errors)

    # --- Capability detection ---

    def supports_streaming(self) -> bool:
        return False

    def supports_function_calling(self) -> bool:
        return False

    def supports_chat(self) -> bool:
        return False

    def supports_vision(self) -> bool:
        return False

    # --- Derived operations ---

    def get_name(self) -> str:
        return self.__class__.__name__

    def get_info(self) -> dict[str, Any]:
        info = ProviderInfo(
            name=self.get_name(),
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            capabilities=Capabilities(
                streaming=self.supports_streaming(),
                function_calling=self.supports_function_calling(),
                chat=self.supports_chat(),
                vision=self.supports_vision(),
            ),
        )
        return info.model_dump()

    async def validate(self) -> bool:
        """Issue a tiny completion; True if it succeeded. Never raises."""
        try:
            await self.complete("test", max_tokens=5)
            return True
        except Exception as e:
            logger.debug(f"{self.get_name()} validation failed: {e}")
            return False

    async def test_connection(self) -> bool:
        return await self.validate()

    async def chat(self, messages: Iterable[ChatMessage | Mapping[str, Any]], **options: Any) -> str:
        """
        Fallback multi-turn chat: flatten messages into one prompt.

        Each message becomes "<Role>: <content>", separated by blank lines.
        Providers with native chat (supports_chat() is True) override this.
        """
        prompt = "\n\n".join(m.render() for m in coerce_messages(messages))
        return await self.complete(prompt, **options)

    async def generate_with_retry(self, prompt: str, max_retries: int = 3, **options: Any) -> str:
        """
        Call complete(), retrying operational failures with exponential backoff.

        Non-operational errors are re-raised on first occurrence. After
        ``max_retries`` attempts the last error is re-raised unchanged.
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")

        metrics = get_metrics()
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.complete(prompt, **options)
            except Exception as e:
                formatted = self.format_error(e)
                if not formatted.is_operational:
                    logger.debug(f"{self.get_name()}: non-operational {formatted.code}, not retrying")
                    raise
                if attempt >= max_retries:
                    logger.error(f"{self.get_name()}: giving up after {max_retries} attempts ({formatted.code})")
                    raise
                delay = backoff_delay(attempt)
                logger.warning(
                    f"{self.get_name()}: attempt {attempt}/{max_retries} failed "
                    f"({formatted.code}: {formatted.message}); retrying in {delay:.1f}s"
                )
                metrics.record_retry(self.name, formatted.code)
                await asyncio.sleep(delay)

    async def stream_with_progress(
        self,
        prompt: str,
        on_progress: Callable[[str], Any] | None = None,
        **options: Any,
    ) -> AsyncIterator[str]:
        """Re-yield stream() chunks, calling on_progress(chunk) for each one."""
        async with aclosing(self.stream(prompt, **options)) as chunks:
            async for chunk in chunks:
                if on_progress is not None:
                    on_progress(chunk)
                yield chunk

    # --- Helpers ---

    def _merge_options(self, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        merged: dict[str, Any] = {"temperature": self.temperature, "max_tokens": self.max_tokens, "model": self.model}
        if options:
            merged.update({k: v for k, v in options.items() if v is not None})
        return merged

    async def _acquire_tokens(self, token_cost: float = 1) -> None:
        if self.rate_limiter is None:
            return
        start = time.monotonic()
        remaining = await self.rate_limiter.remove_tokens(token_cost)
        if remaining < 0:
            # fire_immediately: the request goes out anyway, the shortfall is only reported
            logger.debug(f"{self.get_name()}: sending {-remaining:g} tokens over the local rate limit")
            get_metrics().record_rate_limit_overdraft(self.name)
            return
        waited = time.monotonic() - start
        if waited > 0.001:
            logger.debug(f"{self.get_name()}: rate limiter delayed request {waited:.3f}s")
            get_metrics().record_rate_limit_wait(self.name, waited)

    async def _with_rate_limit(self, fn: Callable[[], Awaitable[T]], token_cost: float = 1) -> T:
        await self._acquire_tokens(token_cost)
        start = time.monotonic()
        try:
            result = await fn()
        except Exception as e:
            get_metrics().record_error(self.name, self.format_error(e).code)
            raise
        get_metrics().record_request(self.name, time.monotonic() - start)
        return result

    # --- HTTP client ---

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url or self.base_url or "",
                headers=self._get_headers(),
                timeout=httpx.Timeout(self.config.timeout),
            )
        return self._client

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": "llmbridge/0.1.0"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(model={self.model})>"
