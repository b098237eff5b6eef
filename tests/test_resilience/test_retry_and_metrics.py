"""Tests for the backoff schedule and the metrics collector."""

import pytest

from llmbridge.resilience.metrics import ProviderMetrics, get_metrics, reset_metrics
from llmbridge.resilience.retry import backoff_delay


class TestBackoff:
    def test_exponential(self):
        assert [backoff_delay(a) for a in range(1, 5)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_ten_seconds(self):
        assert backoff_delay(5) == 10.0
        assert backoff_delay(30) == 10.0

    def test_custom_base_and_cap(self):
        assert backoff_delay(3, base=0.5, cap=1.5) == 1.5

    def test_rejects_zero(self):
        with pytest.raises(ValueError):
            backoff_delay(0)


class TestMetrics:
    def test_singleton_and_reset(self):
        m = get_metrics()
        assert get_metrics() is m
        reset_metrics()
        assert get_metrics() is not m

    def test_counters_by_label(self):
        m = ProviderMetrics()
        m.record_error("claude", "RATE_LIMIT")
        m.record_error("claude", "RATE_LIMIT")
        m.record_error("claude", "TIMEOUT")
        assert m.errors.value == 3
        assert m.errors.get(provider="claude", code="RATE_LIMIT") == 2

    def test_summary(self):
        m = ProviderMetrics()
        m.record_request("claude", 0.2)
        m.record_retry("claude", "SERVICE_UNAVAILABLE")
        m.record_rate_limit_wait("claude", 0.05)
        summary = m.get_summary()
        assert summary["requests"] == 1
        assert summary["retries"] == 1
        assert summary["rate_limit_waits"] == 1
        assert summary["rate_limit_overdrafts"] == 0
        assert summary["p95_latency_seconds"] == 0.2

    def test_histogram_keeps_last_thousand(self):
        m = ProviderMetrics()
        for i in range(1200):
            m.request_latency.observe(float(i))
        assert len(m.request_latency.observations) == 1000
        assert m.request_latency.count == 1200
