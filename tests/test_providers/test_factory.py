"""Tests for the provider registry."""

import pytest

import llmbridge.providers as providers_mod
from llmbridge.config import LLMBridgeConfig, ProviderConfig
from llmbridge.providers import (
    ClaudeProvider,
    available_providers,
    create_provider,
    register_provider,
)


@pytest.fixture
def restore_registry():
    saved = dict(providers_mod._REGISTRY)
    yield
    providers_mod._REGISTRY.clear()
    providers_mod._REGISTRY.update(saved)


class TestCreateProvider:
    def test_claude_and_alias(self):
        assert isinstance(create_provider("claude", {"api_key": "k"}), ClaudeProvider)
        assert isinstance(create_provider("Anthropic", "k"), ClaudeProvider)

    def test_unknown_provider(self):
        with pytest.raises(KeyError, match="Known: anthropic, claude"):
            create_provider("nope", {})

    def test_uses_loaded_config_when_none_given(self, monkeypatch):
        cfg = LLMBridgeConfig(providers={"claude": ProviderConfig(api_key="k", model="from-file")})
        monkeypatch.setattr(providers_mod, "get_config", lambda: cfg)
        p = create_provider("claude")
        assert p.model == "from-file"
        assert p.api_key == "k"


class TestRegisterProvider:
    def test_register_custom(self, echo_cls, restore_registry):
        register_provider("Echo", echo_cls)
        assert "echo" in available_providers()
        assert isinstance(create_provider("echo", {"model": "x"}), echo_cls)

    def test_rejects_non_provider(self, restore_registry):
        with pytest.raises(TypeError):
            register_provider("bad", dict)
