"""
Token-bucket rate limiter — caps outbound requests per provider instance.

The bucket refills lazily on every access, based on elapsed monotonic time.
Blocking callers reserve their tokens synchronously and sleep until the bucket
has refilled past everything reserved ahead of them, so they are served in
call order without holding any event-loop bound primitive.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from llmbridge.config import RateLimitPolicy
from llmbridge.errors import ErrorCode, ProviderError

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


@dataclass
class TokenBucket:
    capacity: float
    rate: float  # tokens per second
    tokens: float
    last_refill: float = field(default_factory=time.monotonic)

    def refill(self, now: float | None = None) -> float:
        now = time.monotonic() if now is None else now
        elapsed = now - self.last_refill
        if elapsed > 0:
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            self.last_refill = now
        return self.tokens

    def has(self, cost: float) -> bool:
        return self.tokens + _EPSILON >= cost

    def take(self, cost: float) -> float:
        self.tokens = max(0.0, self.tokens - cost)
        return self.tokens

    def seconds_until(self, cost: float) -> float:
        deficit = cost - self.tokens
        return 0.0 if deficit <= 0 else deficit / self.rate


class RateLimiter:
    """Token-bucket limiter configured from a RateLimitPolicy."""

    def __init__(self, policy: RateLimitPolicy | Mapping[str, Any] | None = None, **kwargs: Any):
        if policy is None:
            policy = RateLimitPolicy(**kwargs)
        elif isinstance(policy, Mapping):
            policy = RateLimitPolicy.model_validate({**policy, **kwargs})
        elif kwargs:
            policy = RateLimitPolicy.model_validate({**policy.model_dump(), **kwargs})
        self.policy = policy

        capacity = float(policy.bucket_size or policy.tokens_per_interval)
        rate = policy.tokens_per_interval / (policy.interval_ms / 1000.0)
        self.bucket = TokenBucket(capacity=capacity, rate=rate, tokens=capacity)
        self._reserved = 0.0
        self._waiting = 0

    @property
    def fire_immediately(self) -> bool:
        return self.policy.fire_immediately

    @property
    def waiting(self) -> int:
        return self._waiting

    def _check_cost(self, cost: float) -> None:
        if cost < 0:
            raise ValueError(f"Token cost must be non-negative, got {cost}")
        if cost > self.bucket.capacity:
            raise ProviderError(
                ErrorCode.RATE_LIMIT_COST_EXCEEDED,
                f"Requested {cost} tokens but bucket size is {self.bucket.capacity:g}",
                False,
            )

    async def remove_tokens(self, cost: float = 1) -> float:
        """
        Take ``cost`` tokens, waiting for a refill if needed.

        Returns the tokens remaining afterwards. With fire_immediately, never
        waits: a shortfall returns the (negative) deficit and nothing is taken.
        """
        self._check_cost(cost)

        if self.fire_immediately:
            self.bucket.refill()
            if self.bucket.has(cost):
                return self.bucket.take(cost)
            return self.bucket.tokens - cost

        self.bucket.refill()
        if not self._waiting and self.bucket.has(cost):
            return self.bucket.take(cost)

        # Ready once the refill covers every reservation queued ahead of us.
        delay = max(0.0, (self._reserved + cost - self.bucket.tokens) / self.bucket.rate)
        self._reserved += cost
        self._waiting += 1
        try:
            logger.debug(f"Rate limit: waiting {delay:.3f}s for {cost} tokens ({self._waiting} queued)")
            await asyncio.sleep(delay)
            self.bucket.refill()
            while not self.bucket.has(cost):
                await asyncio.sleep(self.bucket.seconds_until(cost))
                self.bucket.refill()
            return self.bucket.take(cost)
        finally:
            self._reserved -= cost
            self._waiting -= 1

    def try_remove_tokens(self, cost: float = 1) -> bool:
        """Take tokens only if available right now and nobody is queued."""
        self._check_cost(cost)
        if self._waiting:
            return False
        self.bucket.refill()
        if not self.bucket.has(cost):
            return False
        self.bucket.take(cost)
        return True

    def get_tokens_remaining(self) -> float:
        return self.bucket.refill()

    def __repr__(self) -> str:
        return (f"<RateLimiter(tokens_per_interval={self.policy.tokens_per_interval}, "
                f"interval_ms={self.policy.interval_ms:g}, bucket_size={self.bucket.capacity:g})>")
