"""
Provider metrics — counters and histograms for requests, errors, retries
and rate-limit waits.
"""

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CounterMetric:
    name: str
    description: str
    value: int = 0
    labels: dict[tuple, int] = field(default_factory=dict)

    def inc(self, labels: dict[str, str] | None = None, value: int = 1):
        self.value += value
        if labels:
            key = tuple(sorted(labels.items()))
            self.labels[key] = self.labels.get(key, 0) + value

    def get(self, **labels: str) -> int:
        return self.labels.get(tuple(sorted(labels.items())), 0)


@dataclass
class HistogramMetric:
    name: str
    description: str
    observations: list[float] = field(default_factory=list)
    sum_value: float = 0.0
    count: int = 0

    def observe(self, value: float):
        self.observations.append(value)
        self.sum_value += value
        self.count += 1
        if len(self.observations) > 1000:
            self.observations = self.observations[-1000:]

    def percentile(self, p: float) -> float:
        if not self.observations:
            return 0.0
        s = sorted(self.observations)
        return s[min(int(len(s) * p), len(s) - 1)]


class ProviderMetrics:
    """Thread-safe metrics collector shared by all provider instances."""

    def __init__(self):
        self._lock = Lock()
        self.requests = CounterMetric("llmbridge_requests_total", "Provider requests issued")
        self.errors = CounterMetric("llmbridge_errors_total", "Provider errors by code")
        self.retries = CounterMetric("llmbridge_retries_total", "Retries scheduled by generate_with_retry")
        self.rate_limit_waits = CounterMetric("llmbridge_rate_limit_waits_total", "Calls delayed by the rate limiter")
        self.rate_limit_overdrafts = CounterMetric(
            "llmbridge_rate_limit_overdrafts_total", "Calls sent while a fire-immediately bucket was short"
        )
        self.rate_limit_wait_seconds = HistogramMetric("llmbridge_rate_limit_wait_seconds", "Time spent waiting for tokens")
        self.request_latency = HistogramMetric("llmbridge_request_latency_seconds", "Provider request latency")

    def record_request(self, provider: str, latency: float):
        with self._lock:
            self.requests.inc({"provider": provider})
            self.request_latency.observe(latency)

    def record_error(self, provider: str, code: str):
        with self._lock:
            self.errors.inc({"provider": provider, "code": code})

    def record_retry(self, provider: str, code: str):
        with self._lock:
            self.retries.inc({"provider": provider, "code": code})

    def record_rate_limit_wait(self, provider: str, seconds: float):
        with self._lock:
            self.rate_limit_waits.inc({"provider": provider})
            self.rate_limit_wait_seconds.observe(seconds)

    def record_rate_limit_overdraft(self, provider: str):
        with self._lock:
            self.rate_limit_overdrafts.inc({"provider": provider})

    def get_summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "requests": self.requests.value,
                "errors": self.errors.value,
                "retries": self.retries.value,
                "rate_limit_waits": self.rate_limit_waits.value,
                "rate_limit_overdrafts": self.rate_limit_overdrafts.value,
                "p95_latency_seconds": self.request_latency.percentile(0.95),
            }


_metrics: ProviderMetrics | None = None


def get_metrics() -> ProviderMetrics:
    global _metrics
    if _metrics is None:
        _metrics = ProviderMetrics()
    return _metrics


def reset_metrics() -> None:
    global _metrics
    _metrics = None
