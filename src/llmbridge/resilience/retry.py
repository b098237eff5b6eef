"""Exponential backoff schedule for BaseProvider.generate_with_retry."""

BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 10.0


def backoff_delay(attempt: int, base: float = BASE_DELAY_SECONDS, cap: float = MAX_DELAY_SECONDS) -> float:
    """Delay after failed attempt ``attempt`` (1-based): base * 2^(attempt-1), capped."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(base * 2 ** (attempt - 1), cap)
