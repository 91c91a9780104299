"""Retry utilities with exponential backoff for analysis provider calls.

Provider clients raise httpx errors on transport problems. Those, and 5xx
responses, are retried; anything else (bad payloads, 4xx, programming
errors) surfaces on the first attempt.
"""

import asyncio
import functools
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

import httpx

from artcurator.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 2
    base_delay: float = 0.5  # Initial delay in seconds
    max_delay: float = 5.0  # Maximum delay between retries
    exponential_base: float = 2.0
    jitter: float = 0.1  # Random jitter factor (0.1 = +/- 10%)
    retryable_exceptions: tuple = field(
        default_factory=lambda: (
            httpx.TimeoutException,
            httpx.NetworkError,
            ConnectionError,
        )
    )
    # For HTTP errors, only retry on these status codes
    retryable_status_codes: tuple = field(
        default_factory=lambda: (500, 502, 503, 504)
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryConfig":
        return cls(
            max_attempts=max(1, settings.source_max_attempts),
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
        )


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay with exponential backoff and jitter."""
    delay = min(config.base_delay * (config.exponential_base ** attempt), config.max_delay)

    jitter_range = delay * config.jitter
    delay = delay + random.uniform(-jitter_range, jitter_range)

    return max(0, delay)


def is_retryable_exception(exc: Exception, config: RetryConfig) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in config.retryable_status_codes

    return isinstance(exc, config.retryable_exceptions)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args,
    config: RetryConfig | None = None,
    on_retry: Callable[[int, Exception], None] | None = None,
    **kwargs,
) -> T:
    """
    Retry an async function call with exponential backoff.

    ``on_retry`` is called with (attempt_number, exception) before each wait.

    Usage:
        payload = await retry_async(analyzer.analyze, image, config=RetryConfig(max_attempts=3))
    """
    if config is None:
        config = RetryConfig()

    name = getattr(func, "__qualname__", repr(func))
    last_exception: Exception | None = None

    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            last_exception = e

            if not is_retryable_exception(e, config):
                raise

            if attempt < config.max_attempts - 1:
                delay = calculate_delay(attempt, config)
                logger.warning(
                    f"Retry {attempt + 1}/{config.max_attempts} for {name} "
                    f"after {type(e).__name__}: {e}. Waiting {delay:.2f}s"
                )
                if on_retry:
                    on_retry(attempt + 1, e)
                await asyncio.sleep(delay)
            else:
                logger.error(f"All {config.max_attempts} attempts failed for {name}: {e}")

    raise last_exception


def async_retry(config: RetryConfig | None = None):
    """
    Decorator form of retry_async.

    Usage:
        @async_retry(RetryConfig(max_attempts=3))
        async def analyze(self, image: bytes) -> dict:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_async(func, *args, config=config, **kwargs)

        return wrapper

    return decorator
