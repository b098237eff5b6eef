"""
llmbridge configuration.

Per-provider settings (credential, model, limits, rate-limit policy).
Reads from ~/.llmbridge/config.toml with environment variable overrides.

Resolution order for a constructed provider, highest wins:
    1. Explicit ProviderConfig values
    2. Provider defaults (get_default_model, get_max_tokens, ...)
    3. Provider environment variable (credential only)
"""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

LLMBRIDGE_HOME = Path(os.getenv("LLMBRIDGE_HOME", Path.home() / ".llmbridge"))
CONFIG_PATH = LLMBRIDGE_HOME / "config.toml"


# ---------------------------------------------------------------------------
# Rate-limit policy
# ---------------------------------------------------------------------------

INTERVAL_UNITS_MS: dict[str, int] = {
    "second": 1000,
    "sec": 1000,
    "minute": 60 * 1000,
    "min": 60 * 1000,
    "hour": 60 * 60 * 1000,
    "hr": 60 * 60 * 1000,
    "day": 24 * 60 * 60 * 1000,
}


class RateLimitPolicy(BaseModel):
    """Token-bucket policy. Numeric intervals are milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    tokens_per_interval: int = Field(60, gt=0, alias="tokensPerInterval")
    interval: str | float | timedelta = "minute"
    bucket_size: int | None = Field(None, gt=0, alias="bucketSize")
    fire_immediately: bool = Field(False, alias="fireImmediately")

    @field_validator("interval")
    @classmethod
    def _check_interval(cls, v: str | float | timedelta) -> str | float | timedelta:
        if isinstance(v, str):
            unit = v.strip().lower().rstrip("s")
            if unit not in INTERVAL_UNITS_MS:
                raise ValueError(f"Unknown interval unit {v!r}; expected one of {sorted(INTERVAL_UNITS_MS)}")
            return unit
        if isinstance(v, timedelta):
            if v.total_seconds() <= 0:
                raise ValueError("interval must be positive")
            return v
        if v <= 0:
            raise ValueError("interval must be positive")
        return v

    @model_validator(mode="after")
    def _default_bucket_size(self) -> RateLimitPolicy:
        if self.bucket_size is None:
            self.bucket_size = self.tokens_per_interval
        return self

    @property
    def interval_ms(self) -> float:
        if isinstance(self.interval, str):
            return float(INTERVAL_UNITS_MS[self.interval])
        if isinstance(self.interval, timedelta):
            return self.interval.total_seconds() * 1000
        return float(self.interval)


# ---------------------------------------------------------------------------
# Single provider config
# ---------------------------------------------------------------------------

_KEY_ALIASES = {
    "apiKey": "api_key",
    "maxTokens": "max_tokens",
    "rateLimit": "rate_limit",
    "baseUrl": "base_url",
    "retryUnknownErrors": "retry_unknown_errors",
}


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for one provider instance. Read-only once built."""

    api_key: str | None = None
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    rate_limit: RateLimitPolicy | None = None
    base_url: str | None = None
    timeout: float = 60.0
    retry_unknown_errors: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.rate_limit, Mapping):
            object.__setattr__(self, "rate_limit", RateLimitPolicy.model_validate(dict(self.rate_limit)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProviderConfig:
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = dict(data.get("extra") or {})
        for key, value in data.items():
            if key == "extra":
                continue
            name = _KEY_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        return cls(**kwargs, extra=extra)

    @classmethod
    def from_value(cls, value: ProviderConfig | Mapping[str, Any] | str | None) -> ProviderConfig:
        """Accept a config, a mapping, a bare API key (legacy), or None."""
        if isinstance(value, ProviderConfig):
            return value
        if isinstance(value, str):
            return cls(api_key=value)
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        return cls()

    def merged(self, **overrides: Any) -> ProviderConfig:
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class LLMBridgeConfig:
    """Top-level configuration: one ProviderConfig per named provider."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    default_provider: str = "claude"

    def get_provider(self, name: str) -> ProviderConfig:
        return self.providers.get(name.lower(), ProviderConfig())


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_ENV_OVERRIDE = re.compile(r"^LLMBRIDGE_([A-Z0-9]+)_(MODEL|MAX_TOKENS|TEMPERATURE|BASE_URL)$")


def _apply_toml(config: LLMBridgeConfig, data: dict[str, Any]) -> None:
    """Overlay TOML data onto an LLMBridgeConfig."""
    defaults = data.get("defaults", {})
    if "provider" in defaults:
        config.default_provider = str(defaults["provider"]).lower()

    for name, section in data.get("providers", {}).items():
        base = config.providers.get(name.lower(), ProviderConfig())
        overlay = ProviderConfig.from_dict(section)
        config.providers[name.lower()] = base.merged(
            api_key=overlay.api_key, model=overlay.model, max_tokens=overlay.max_tokens,
            temperature=overlay.temperature, rate_limit=overlay.rate_limit, base_url=overlay.base_url,
            timeout=overlay.timeout if "timeout" in section else None,
            retry_unknown_errors=overlay.retry_unknown_errors if "retry_unknown_errors" in section else None,
            extra={**base.extra, **overlay.extra} or None,
        )


def _apply_env(config: LLMBridgeConfig, environ: Mapping[str, str]) -> None:
    for key, value in environ.items():
        m = _ENV_OVERRIDE.match(key)
        if not m or not value:
            continue
        name, setting = m.group(1).lower(), m.group(2)
        base = config.providers.get(name, ProviderConfig())
        if setting == "MODEL":
            config.providers[name] = base.merged(model=value)
        elif setting == "MAX_TOKENS":
            config.providers[name] = base.merged(max_tokens=int(value))
        elif setting == "TEMPERATURE":
            config.providers[name] = base.merged(temperature=float(value))
        elif setting == "BASE_URL":
            config.providers[name] = base.merged(base_url=value)


def load_config(config_path: Path | None = None, environ: Mapping[str, str] | None = None) -> LLMBridgeConfig:
    """
    Build config from defaults → TOML file → environment variables.

    Precedence (highest wins):
        1. LLMBRIDGE_<PROVIDER>_{MODEL,MAX_TOKENS,TEMPERATURE,BASE_URL}
        2. ~/.llmbridge/config.toml
        3. Built-in defaults
    """
    config = LLMBridgeConfig()

    path = config_path or CONFIG_PATH
    if path.exists():
        with open(path, "rb") as f:
            toml_data = tomllib.load(f)
        _apply_toml(config, toml_data)

    _apply_env(config, os.environ if environ is None else environ)
    return config


# ---------------------------------------------------------------------------
# Global singleton
# ---------------------------------------------------------------------------

_config: LLMBridgeConfig | None = None


def get_config() -> LLMBridgeConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    global _config
    _config = None
