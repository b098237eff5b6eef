"""Tests for the provider error taxonomy."""

from unittest.mock import MagicMock

import httpx
import pytest

from llmbridge.errors import (
    AuthenticationError,
    ErrorCode,
    InvalidRequestError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    ServiceUnavailableError,
    error_from_response,
    error_from_status,
    error_from_transport,
    format_error,
)


def _make_response(status_code: int, json_body: dict | None = None, text: str = "") -> MagicMock:
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.text = text or str(json_body)
    if json_body is not None:
        resp.json.return_value = json_body
    else:
        resp.json.side_effect = ValueError("No JSON")
    return resp


class TestProviderError:
    def test_fields(self):
        err = ProviderError("RATE_LIMIT", "Too many requests")
        assert err.code == "RATE_LIMIT"
        assert err.message == "Too many requests"
        assert err.is_operational is True
        assert str(err) == "Too many requests"

    def test_enum_code_stored_as_string(self):
        err = ProviderError(ErrorCode.TIMEOUT, "slow", False)
        assert err.code == "TIMEOUT"
        assert err.is_operational is False

    def test_provider_prefix(self):
        err = ProviderError(ErrorCode.UNKNOWN_ERROR, "boom", provider="claude", status_code=500)
        assert "claude" in str(err)
        assert err.status_code == 500
        assert err.to_dict()["provider"] == "claude"

    def test_subclasses_classify_operational(self):
        assert RateLimitError("x").is_operational is True
        assert ServiceUnavailableError("x").is_operational is True
        assert AuthenticationError("x").is_operational is False
        assert InvalidRequestError("x").is_operational is False
        assert ModelNotFoundError("x").is_operational is False

    def test_subclasses_inherit_provider_error(self):
        assert isinstance(RateLimitError("x"), ProviderError)
        assert RateLimitError("x").code == "RATE_LIMIT"


class TestFormatError:
    def test_passes_provider_error_through(self):
        original = ProviderError("RATE_LIMIT", "Too many requests")
        assert format_error(original) is original

    def test_idempotent(self):
        once = format_error(ValueError("bad"))
        twice = format_error(once)
        assert twice is once
        assert (twice.code, twice.message, twice.is_operational) == (once.code, once.message, once.is_operational)

    def test_wraps_unknown_as_operational(self):
        err = format_error(ConnectionError("ECONNREFUSED"))
        assert isinstance(err, ProviderError)
        assert err.code == "UNKNOWN_ERROR"
        assert err.message == "ECONNREFUSED"
        assert err.is_operational is True

    def test_unknown_operational_configurable(self):
        err = format_error(RuntimeError("malformed"), unknown_is_operational=False)
        assert err.is_operational is False

    def test_keeps_cause_and_traceback(self):
        try:
            raise RuntimeError("Test error")
        except RuntimeError as e:
            err = format_error(e)
        assert err.__cause__ is not None
        assert "Test error" in str(err.__cause__)
        assert err.__traceback__ is not None

    def test_empty_message_gets_default(self):
        assert format_error(RuntimeError()).message == "An unknown error occurred"


class TestStatusMapping:
    @pytest.mark.parametrize("status,cls,operational", [
        (401, AuthenticationError, False),
        (403, AuthenticationError, False),
        (400, InvalidRequestError, False),
        (404, ModelNotFoundError, False),
        (429, RateLimitError, True),
        (500, ServiceUnavailableError, True),
        (529, ServiceUnavailableError, True),
    ])
    def test_status_to_class(self, status, cls, operational):
        err = error_from_status(status, "msg", "claude")
        assert isinstance(err, cls)
        assert err.is_operational is operational
        assert err.status_code == status

    def test_408_is_operational_timeout(self):
        err = error_from_status(408, "", "claude")
        assert err.code == "TIMEOUT"
        assert err.is_operational is True

    def test_response_with_anthropic_error_body(self):
        resp = _make_response(400, {"type": "error", "error": {"type": "invalid_request_error", "message": "max_tokens too big"}})
        err = error_from_response(resp, "claude")
        assert isinstance(err, InvalidRequestError)
        assert err.message == "max_tokens too big"

    def test_response_without_json(self):
        resp = _make_response(502, text="Bad gateway")
        err = error_from_response(resp, "claude")
        assert err.message == "Bad gateway"
        assert err.status_code == 502


class TestTransportMapping:
    def test_timeout(self):
        err = error_from_transport(httpx.ReadTimeout("read timed out"), "claude", "Claude API error")
        assert err.code == "TIMEOUT"
        assert err.is_operational is True
        assert err.message.startswith("Claude API error")

    def test_connect_error(self):
        err = error_from_transport(httpx.ConnectError("refused"), "claude")
        assert err.code == "NETWORK_ERROR"
        assert isinstance(err.__cause__, httpx.ConnectError)
