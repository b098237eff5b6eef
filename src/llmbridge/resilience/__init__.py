"""Resilience layer — rate limiting, retry backoff, metrics."""

from .metrics import ProviderMetrics, get_metrics, reset_metrics
from .rate_limiter import RateLimiter, TokenBucket
from .retry import backoff_delay

__all__ = [
    "ProviderMetrics",
    "RateLimiter",
    "TokenBucket",
    "backoff_delay",
    "get_metrics",
    "reset_metrics",
]
