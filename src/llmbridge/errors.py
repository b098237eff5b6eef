"""
Provider errors — one normalized shape for every backend failure.

Every error surfaced to a caller is a (code, message, is_operational) triple.
Operational errors are transient (rate limiting, outages, network trouble) and
worth retrying; non-operational errors (bad credentials, malformed requests)
will fail the same way every time.
"""

from __future__ import annotations

import logging
from enum import Enum

import httpx

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT_COST_EXCEEDED = "RATE_LIMIT_COST_EXCEEDED"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ProviderError(Exception):
    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        is_operational: bool = True,
        *,
        provider: str | None = None,
        status_code: int | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.is_operational = is_operational
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}" if provider else message)

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "message": self.message,
            "is_operational": self.is_operational,
            "provider": self.provider,
            "status_code": self.status_code,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r}, is_operational={self.is_operational})"


class RateLimitError(ProviderError):
    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = 429):
        super().__init__(ErrorCode.RATE_LIMIT, message, True, provider=provider, status_code=status_code)


class AuthenticationError(ProviderError):
    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = 401):
        super().__init__(ErrorCode.AUTHENTICATION_ERROR, message, False, provider=provider, status_code=status_code)


class InvalidRequestError(ProviderError):
    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = 400):
        super().__init__(ErrorCode.INVALID_REQUEST, message, False, provider=provider, status_code=status_code)


class ModelNotFoundError(ProviderError):
    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = 404):
        super().__init__(ErrorCode.MODEL_NOT_FOUND, message, False, provider=provider, status_code=status_code)


class ServiceUnavailableError(ProviderError):
    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = 503):
        super().__init__(ErrorCode.SERVICE_UNAVAILABLE, message, True, provider=provider, status_code=status_code)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def format_error(error: BaseException, *, unknown_is_operational: bool = True) -> ProviderError:
    """
    Normalize any raised value into a ProviderError.

    A ProviderError is returned as-is. Anything else is wrapped with code
    UNKNOWN_ERROR; ``unknown_is_operational`` decides whether such wrapped
    errors are considered retryable.
    """
    if isinstance(error, ProviderError):
        return error
    message = str(error) or "An unknown error occurred"
    wrapped = ProviderError(ErrorCode.UNKNOWN_ERROR, message, unknown_is_operational)
    wrapped.__cause__ = error
    if error.__traceback__ is not None:
        wrapped = wrapped.with_traceback(error.__traceback__)
    return wrapped


def error_from_status(status_code: int, message: str, provider: str | None = None) -> ProviderError:
    if status_code in (401, 403):
        return AuthenticationError(message or "Authentication failed.", provider=provider, status_code=status_code)
    if status_code == 404:
        return ModelNotFoundError(message or "Model not found.", provider=provider, status_code=status_code)
    if status_code == 408:
        return ProviderError(ErrorCode.TIMEOUT, message or "Request timed out.", True,
                             provider=provider, status_code=status_code)
    if status_code == 429:
        return RateLimitError(message or "Rate limit exceeded.", provider=provider, status_code=status_code)
    if status_code >= 500:
        return ServiceUnavailableError(message or "Service unavailable.", provider=provider, status_code=status_code)
    return InvalidRequestError(message or "Invalid request.", provider=provider, status_code=status_code)


def _extract_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return err["message"]
        if isinstance(err, str):
            return err
        if body.get("message"):
            return body["message"]
    return response.text


def error_from_response(response: httpx.Response, provider: str | None = None) -> ProviderError:
    return error_from_status(response.status_code, _extract_message(response), provider)


def error_from_transport(exc: httpx.HTTPError, provider: str | None = None, context: str = "API error") -> ProviderError:
    code = ErrorCode.TIMEOUT if isinstance(exc, httpx.TimeoutException) else ErrorCode.NETWORK_ERROR
    err = ProviderError(code, f"{context}: {exc}", True, provider=provider)
    err.__cause__ = exc
    return err
