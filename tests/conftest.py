"""Shared fixtures for the llmbridge test suite."""

import asyncio

import pytest

from llmbridge.providers.base import BaseProvider
from llmbridge.resilience.metrics import reset_metrics


class EchoProvider(BaseProvider):
    """Minimal concrete provider: echoes the prompt, streams two chunks."""

    name = "echo"

    def __init__(self, config=None):
        super().__init__(config)
        self.calls: list[tuple[str, dict]] = []

    async def complete(self, prompt, **options):
        self.calls.append((prompt, options))
        return f"Response to: {prompt}"

    async def stream(self, prompt, **options):
        yield "chunk1"
        yield "chunk2"

    def get_default_model(self):
        return "test-model"

    def get_api_key_env_var(self):
        return "TEST_API_KEY"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials out of the tests."""
    monkeypatch.delenv("TEST_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture(autouse=True)
def fresh_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def echo_cls():
    return EchoProvider


@pytest.fixture
def provider():
    return EchoProvider({"api_key": "test"})


@pytest.fixture
def no_sleep(monkeypatch):
    """Replace asyncio.sleep; returns the list of requested delays."""
    delays: list[float] = []

    async def fake_sleep(delay, result=None):
        delays.append(delay)
        return result

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays
