"""Retry logic with exponential backoff for CHPP calls.

This module provides:
- RetryConfig: Attempt limit, backoff bounds and retryable API codes
- should_retry: Classify a failure as transient or fatal
- retry_with_backoff: Run an async operation with fresh credentials per attempt
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from chppsync.client.api import ChppApiError, NetworkError
from chppsync.core.oauth import SigningContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 32.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# 503 = service unavailable, 429 = rate limited
DEFAULT_RETRYABLE_CODES = frozenset({503, 429})


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy.

    Attributes:
        max_retries: Retries after the first attempt (total = max_retries + 1).
        initial_backoff: Delay before the first retry, in seconds.
        max_backoff: Upper bound for the delay.
        retryable_codes: ChppApiError codes treated as transient.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    max_backoff: float = DEFAULT_MAX_BACKOFF
    retryable_codes: frozenset[int] = field(default=DEFAULT_RETRYABLE_CODES)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_backoff < 0 or self.max_backoff < 0:
            raise ValueError("backoff values must be >= 0")


def should_retry(error: BaseException, config: RetryConfig | None = None) -> bool:
    """Whether a failure is transient.

    Network errors and API errors with a retryable code are transient;
    everything else (auth, parse, other API codes) is fatal.
    """
    config = config or RetryConfig()
    if isinstance(error, NetworkError):
        return True
    if isinstance(error, ChppApiError):
        return error.code in config.retryable_codes
    return False


async def retry_with_backoff(
    operation_name: str,
    get_credentials: Callable[[], SigningContext],
    operation: Callable[[SigningContext], Awaitable[T]],
    config: RetryConfig | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Execute an async operation with exponential backoff retry.

    A new SigningContext is built before every attempt, so each request gets
    its own nonce and timestamp.

    Args:
        operation_name: Name used in log messages.
        get_credentials: Builds a fresh signing context.
        operation: Async callable taking the signing context.
        config: Retry policy (defaults to RetryConfig()).
        sleep: Awaitable delay function.

    Returns:
        Result of the operation.

    Raises:
        The error of a fatal attempt, or of the last attempt once retries
        are exhausted.
    """
    config = config or RetryConfig()
    backoff = config.initial_backoff

    for attempt in range(config.max_retries + 1):
        context = get_credentials()
        try:
            return await operation(context)
        except Exception as e:
            if not should_retry(e, config):
                logger.debug(f"{operation_name} failed with non-retryable error: {e}")
                raise
            if attempt == config.max_retries:
                logger.error(
                    f"{operation_name} failed after {config.max_retries + 1} attempts: {e}"
                )
                raise

            logger.warning(
                f"{operation_name} attempt {attempt + 1}/{config.max_retries + 1} "
                f"failed: {e}. Retrying in {backoff:.1f}s..."
            )
            await sleep(backoff)
            backoff = min(backoff * DEFAULT_BACKOFF_MULTIPLIER, config.max_backoff)

    # Should not reach here, but satisfy type checker
    raise RuntimeError("Unexpected retry loop exit")


async def retry_with_default_config(
    operation_name: str,
    get_credentials: Callable[[], SigningContext],
    operation: Callable[[SigningContext], Awaitable[T]],
) -> T:
    """retry_with_backoff() with the default policy."""
    return await retry_with_backoff(
        operation_name, get_credentials, operation, RetryConfig()
    )
