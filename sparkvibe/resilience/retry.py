"""Retry logic with exponential backoff for idempotent requests."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    base_delay: float = 0.5  # Base delay in seconds
    max_delay: float = 4.0  # Maximum delay
    exponential_base: float = 2.0
    jitter: bool = True  # Add random jitter to spread out retries
    jitter_factor: float = 0.25  # Jitter as fraction of delay

    # Exceptions to retry on
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)


class ExponentialBackoff:
    """Exponential backoff calculator with optional jitter."""

    def __init__(
        self,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        jitter_factor: float = 0.25
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_factor = jitter_factor

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.exponential_base ** attempt)

        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay = delay + random.uniform(-jitter_range, jitter_range)

        delay = min(delay, self.max_delay)

        return max(0.0, delay)


def is_retryable(error: Exception, config: RetryConfig) -> bool:
    """Check whether an error may be retried.

    Errors can opt out with a falsy ``retryable`` attribute.
    """
    if not isinstance(error, config.retryable_exceptions):
        return False
    return bool(getattr(error, "retryable", True))


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
) -> T:
    """
    Execute async function with retry logic.

    Args:
        func: Zero-argument async function to execute
        config: Retry configuration
        on_retry: Callback called on each retry (attempt, exception, delay)

    Returns:
        Function result

    Raises:
        The first non-retryable exception, or the last one once retries run out
    """
    config = config or RetryConfig()
    backoff = ExponentialBackoff(
        base_delay=config.base_delay,
        max_delay=config.max_delay,
        exponential_base=config.exponential_base,
        jitter=config.jitter,
        jitter_factor=config.jitter_factor
    )

    attempt = 0
    while True:
        try:
            return await func()

        except Exception as e:
            if attempt >= config.max_retries or not is_retryable(e, config):
                raise

            delay = backoff.get_delay(attempt)

            if on_retry:
                on_retry(attempt, e, delay)

            logger.debug(f"Retrying after {type(e).__name__} in {delay:.2f}s (attempt {attempt + 1})")
            await asyncio.sleep(delay)
            attempt += 1
