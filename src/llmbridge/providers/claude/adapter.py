"""
Anthropic (Claude) provider adapter.

Synchronous completion, native multi-turn chat, and server-sent-event
streaming against the Messages API.
"""

import json
import logging
import time
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

import httpx

from llmbridge.core.types import ChatMessage, Role, coerce_messages
from llmbridge.errors import (
    AuthenticationError,
    InvalidRequestError,
    ProviderError,
    error_from_response,
    error_from_status,
    error_from_transport,
)
from llmbridge.providers.base import BaseProvider
from llmbridge.resilience.metrics import get_metrics

logger = logging.getLogger(__name__)

# Anthropic error "type" → equivalent HTTP status
ERROR_TYPE_STATUS = {
    "invalid_request_error": 400,
    "authentication_error": 401,
    "permission_error": 403,
    "not_found_error": 404,
    "request_too_large": 413,
    "rate_limit_error": 429,
    "api_error": 500,
    "overloaded_error": 529,
}


class ClaudeProvider(BaseProvider):
    name = "claude"
    base_url = "https://api.anthropic.com"
    API_VERSION = "2023-06-01"
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def get_default_model(self) -> str:
        return self.DEFAULT_MODEL

    def get_api_key_env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def get_model(self) -> str:
        return self.model

    def supports_streaming(self) -> bool:
        return True

    def supports_chat(self) -> bool:
        return True

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key or "",
            "anthropic-version": self.API_VERSION,
            "User-Agent": "llmbridge/0.1.0",
        }

    # --- Request building ---

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise AuthenticationError(
                f"API key is required for {self.get_name()} (set {self.get_api_key_env_var()})",
                provider=self.name, status_code=None,
            )

    def convert_messages(self, messages: Iterable[ChatMessage]) -> tuple[str | None, list[dict[str, str]]]:
        system_parts = []
        converted = []
        for msg in messages:
            if msg.role == Role.SYSTEM.value:
                system_parts.append(msg.content)
                continue
            role = msg.role if msg.role in (Role.USER.value, Role.ASSISTANT.value) else Role.USER.value
            converted.append({"role": role, "content": msg.content})
        return ("\n\n".join(system_parts) or None), converted

    def _build_body(self, messages: list[dict[str, str]], options: Mapping[str, Any], stream: bool = False) -> dict[str, Any]:
        opts = self._merge_options(options)
        body: dict[str, Any] = {"model": opts["model"], "max_tokens": opts["max_tokens"], "messages": messages}
        if opts.get("temperature") is not None:
            body["temperature"] = opts["temperature"]
        if opts.get("system"):
            body["system"] = opts["system"]
        if opts.get("stop"):
            stop = opts["stop"]
            body["stop_sequences"] = [stop] if isinstance(stop, str) else list(stop)
        if stream:
            body["stream"] = True
        return body

    @staticmethod
    def _first_text(data: dict[str, Any]) -> str:
        for block in data.get("content") or []:
            if block.get("type", "text") == "text":
                return block.get("text", "")
        return ""

    # --- Completion ---

    async def _send(self, messages: list[dict[str, str]], options: Mapping[str, Any]) -> str:
        self._require_api_key()
        body = self._build_body(messages, options)
        logger.debug(f"Claude request: model={body['model']} max_tokens={body['max_tokens']}")

        async def call() -> str:
            try:
                resp = await self.client.post("/v1/messages", json=body)
            except httpx.HTTPError as e:
                raise error_from_transport(e, self.name, "Claude API error") from e
            if resp.status_code != 200:
                raise error_from_response(resp, self.name)
            return self._first_text(resp.json())

        return await self._with_rate_limit(call)

    async def complete(self, prompt: str, **options: Any) -> str:
        return await self._send([{"role": Role.USER.value, "content": prompt}], options)

    async def chat(self, messages: Iterable[ChatMessage | Mapping[str, Any]], **options: Any) -> str:
        system, converted = self.convert_messages(coerce_messages(messages))
        if not converted:
            raise InvalidRequestError(
                "Claude chat needs at least one user or assistant message", provider=self.name, status_code=None
            )
        if system and not options.get("system"):
            options["system"] = system
        return await self._send(converted, options)

    # --- Streaming ---

    def _stream_error(self, evt: dict[str, Any]) -> ProviderError:
        err = evt.get("error") or {}
        status = ERROR_TYPE_STATUS.get(err.get("type", ""), 500)
        return error_from_status(status, err.get("message", "Stream error"), self.name)

    async def stream(self, prompt: str, **options: Any) -> AsyncIterator[str]:
        self._require_api_key()
        body = self._build_body([{"role": Role.USER.value, "content": prompt}], options, stream=True)
        await self._acquire_tokens()
        start = time.monotonic()
        try:
            async with self.client.stream("POST", "/v1/messages", json=body) as resp:
                if resp.status_code != 200:
                    await resp.aread()
                    raise error_from_response(resp, self.name)
                async for line in resp.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    try:
                        evt = json.loads(line[5:].strip())
                    except json.JSONDecodeError:
                        continue
                    t = evt.get("type")
                    if t == "content_block_delta":
                        delta = evt.get("delta") or {}
                        if delta.get("type") == "text_delta" and delta.get("text"):
                            yield delta["text"]
                    elif t == "error":
                        raise self._stream_error(evt)
        except ProviderError as e:
            get_metrics().record_error(self.name, e.code)
            raise
        except httpx.HTTPError as e:
            err = error_from_transport(e, self.name, "Claude API streaming error")
            get_metrics().record_error(self.name, err.code)
            raise err from e
        get_metrics().record_request(self.name, time.monotonic() - start)
