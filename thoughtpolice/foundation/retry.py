"""Bounded retry with backoff for async operations."""

import asyncio
import random
from typing import Type, Callable, Any, Optional, Tuple, Awaitable
from dataclasses import dataclass
from enum import Enum

from .logging import get_logger, LogContext


class RetryStrategy(Enum):
    """Retry strategy types."""
    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    LINEAR = "linear"


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    ``max_attempts`` counts the first call, so ``max_attempts=4`` means
    three retries. ``retry_if`` narrows ``exceptions`` further: an
    exception of a listed type is only retried when the predicate accepts it.
    """
    max_attempts: int = 4
    base_delay: float = 0.2
    max_delay: float = 60.0
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL
    backoff_factor: float = 2.0
    jitter: bool = True
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
    retry_if: Optional[Callable[[Exception], bool]] = None

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number."""
        if self.strategy == RetryStrategy.FIXED:
            delay = self.base_delay
        elif self.strategy == RetryStrategy.EXPONENTIAL:
            delay = self.base_delay * (self.backoff_factor ** attempt)
        else:
            delay = self.base_delay * (attempt + 1)

        # +/-10% jitter
        if self.jitter:
            jitter_amount = delay * 0.1
            delay += random.uniform(-jitter_amount, jitter_amount)

        return max(0.0, min(delay, self.max_delay))

    def is_retryable(self, error: Exception) -> bool:
        if not isinstance(error, self.exceptions):
            return False
        if self.retry_if is not None:
            return bool(self.retry_if(error))
        return True


class RetryError(Exception):
    """Exception raised when all retry attempts are exhausted."""

    def __init__(self, attempts: int, last_exception: Exception):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(f"Operation failed after {attempts} attempts. Last error: {last_exception}")


class RetryableOperation:
    """Runs an async operation under a RetryConfig.

    Non-retryable exceptions propagate immediately and unchanged. When the
    attempts run out, RetryError wraps the last exception.
    """

    def __init__(
        self,
        retry_config: RetryConfig,
        on_retry: Optional[Callable[[int, Exception, float], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.retry_config = retry_config
        self.on_retry = on_retry
        self._sleep = sleep
        self.logger = get_logger(__name__, LogContext(component="RetryableOperation"))

    async def aexecute(self, operation: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Execute async operation with retry logic."""
        last_exception = None

        for attempt in range(self.retry_config.max_attempts):
            try:
                return await operation(*args, **kwargs)

            except self.retry_config.exceptions as e:
                if not self.retry_config.is_retryable(e):
                    raise

                last_exception = e

                if attempt == self.retry_config.max_attempts - 1:
                    self.logger.error(
                        "Final async retry attempt failed",
                        attempt=attempt + 1,
                        max_attempts=self.retry_config.max_attempts,
                        error=str(e)
                    )
                    break

                delay = self.retry_config.calculate_delay(attempt)
                self.logger.warning(
                    "Async retry attempt failed, retrying",
                    attempt=attempt + 1,
                    max_attempts=self.retry_config.max_attempts,
                    delay_seconds=delay,
                    error=str(e)
                )
                if self.on_retry is not None:
                    self.on_retry(attempt + 1, e, delay)

                await self._sleep(delay)

        raise RetryError(self.retry_config.max_attempts, last_exception)


# Transient HTTP failures: 3 retries on top of the first call
HTTP_RETRY = RetryConfig(
    max_attempts=4,
    base_delay=0.2,
    max_delay=60.0,
    strategy=RetryStrategy.EXPONENTIAL,
    backoff_factor=2.0,
    jitter=True
)
