"""Retry utilities for database calls with exponential backoff.

Provider calls are never retried. Only the persistence layer uses these
helpers.
"""

import logging
import random
import time
from functools import wraps
from typing import Callable, Optional

from pymongo.errors import AutoReconnect, ConnectionFailure, NetworkTimeout

from .exceptions import DatabaseError, TimeoutError

logger = logging.getLogger(__name__)

RETRYABLE_DATABASE_ERRORS = (AutoReconnect, ConnectionFailure, NetworkTimeout)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        timeout: Optional[float] = None
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts, including the first
            base_delay: Delay in seconds before the first retry
            max_delay: Upper bound for any single delay
            exponential_base: Base for exponential backoff calculation
            jitter: Whether to add random +/-25% jitter to delays
            timeout: Total time budget for all attempts in seconds
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.timeout = timeout

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for a given (0-based) attempt number."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)

        if self.jitter:
            jitter_range = delay * 0.25
            delay = max(0.1, delay + random.uniform(-jitter_range, jitter_range))

        return delay


DATABASE_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=1.0,
    max_delay=10.0,
    exponential_base=2.0,
    jitter=True,
    timeout=60.0
)


def retry_with_backoff(config: RetryConfig, operation_name: Optional[str] = None, sleep: Callable[[float], None] = time.sleep):
    """Decorator retrying transient pymongo connection errors.

    Any other exception propagates immediately. When every attempt fails the
    last error is raised as ``DatabaseError``.

    Args:
        config: Retry configuration
        operation_name: Name used in logs and errors (defaults to the function name)
        sleep: Sleep function, injectable for tests

    Returns:
        Decorated function
    """
    def decorator(func: Callable) -> Callable:
        name = operation_name or func.__name__

        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            last_exception = None

            for attempt in range(config.max_attempts):
                if config.timeout and (time.time() - start_time) > config.timeout:
                    raise TimeoutError(
                        f"Total timeout exceeded ({config.timeout}s) for {name}",
                        operation=name,
                        timeout_seconds=config.timeout
                    )

                try:
                    result = func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(f"Database operation {name} succeeded on attempt {attempt + 1}")
                    return result
                except RETRYABLE_DATABASE_ERRORS as e:
                    last_exception = e
                    if attempt == config.max_attempts - 1:
                        break

                    delay = config.calculate_delay(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1} failed for {name}: {e}. Retrying in {delay:.2f}s..."
                    )
                    sleep(delay)

            logger.error(f"All {config.max_attempts} attempts failed for {name}. Last error: {last_exception}")
            raise DatabaseError(
                f"Database operation {name} failed after {config.max_attempts} attempts: {last_exception}",
                operation=name
            )

        return wrapper
    return decorator


def retry_database(func: Callable) -> Callable:
    """Decorator for retrying MongoDB operations."""
    return retry_with_backoff(DATABASE_RETRY_CONFIG)(func)
