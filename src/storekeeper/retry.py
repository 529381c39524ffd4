"""
retry.py — Exponential backoff for transient network failures.

Only errors whose message looks like a transport problem are retried;
auth failures, rate limits and vendor error codes surface immediately.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from storekeeper.config import RETRY_BASE_DELAY_MS, RETRY_MAX_DELAY_MS, RETRY_MAX_RETRIES
from storekeeper.core.errors import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_PATTERNS = (
    "timeout",
    "connection",
    "network",
    "dns",
    "reset",
    "refused",
    "unreachable",
)


@dataclass
class RetryConfig:
    max_retries: int = RETRY_MAX_RETRIES
    base_delay_ms: int = RETRY_BASE_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait before retry ``attempt`` (0-based), with jitter."""
        exponential = min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)
        jitter = random.randint(0, self.base_delay_ms)
        return min(exponential + jitter, self.max_delay_ms) / 1000.0

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries


def is_retryable_error(error) -> bool:
    if isinstance(error, NetworkError):
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in _RETRYABLE_PATTERNS)


async def retry_with_backoff(operation: Callable[[], Awaitable[T]],
                             description: str = "operation",
                             config: RetryConfig = None) -> T:
    """Await ``operation()``, retrying transient failures with backoff.

    The last exception propagates once retries are exhausted or the
    error is not retryable.
    """
    config = config or RetryConfig()
    attempt = 0
    while True:
        try:
            result = await operation()
            if attempt > 0:
                logger.info(f"{description} succeeded after {attempt} retries")
            return result
        except Exception as e:
            if not is_retryable_error(e) or not config.should_retry(attempt):
                raise
            delay = config.delay_for_attempt(attempt)
            attempt += 1
            logger.warning(f"{description} failed ({e}); retry {attempt}/"
                           f"{config.max_retries} in {delay:.1f}s")
            await asyncio.sleep(delay)
