"""
Retry utilities with exponential backoff for crusty-buffer services.
"""

import random
import time
from typing import Any, Callable, Optional, Tuple, Type

from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings

logger = get_logger(__name__)


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        backoff_factor: float = 2.0,
        jitter: bool = True,
        retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self.retryable_exceptions = retryable_exceptions

    @classmethod
    def from_settings(cls, **overrides) -> "RetryConfig":
        """Build a config from the worker settings; keyword overrides win."""
        worker = get_settings().worker
        values = {
            "max_retries": worker.save_max_retries,
            "base_delay": worker.retry_delay,
            "max_delay": worker.retry_delay * 10,
            "backoff_factor": worker.retry_backoff_factor,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay for retry attempt with exponential backoff and jitter."""
    delay = config.base_delay * (config.backoff_factor ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_range = delay * 0.1
        delay += random.uniform(-jitter_range, jitter_range)

    return max(0, delay)


def retry_with_backoff(
    func: Callable,
    *args,
    config: Optional[RetryConfig] = None,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs
) -> Any:
    """
    Execute a function with retry logic and exponential backoff.

    Args:
        func: Function to execute
        *args: Arguments to pass to function
        config: Retry configuration, defaults to the worker settings
        retryable_exceptions: Overrides ``config.retryable_exceptions``
        sleep: Sleep function, replaceable in tests
        **kwargs: Keyword arguments to pass to function

    Returns:
        Function result

    Raises:
        RetryError: If all retry attempts are exhausted
        Exception: Any non-retryable exception, unchanged
    """
    config = config or RetryConfig.from_settings()
    retryable = retryable_exceptions or config.retryable_exceptions
    name = getattr(func, "__name__", repr(func))

    for attempt in range(config.max_retries + 1):
        try:
            return func(*args, **kwargs)
        except retryable as e:
            if attempt == config.max_retries:
                logger.error(f"{name} failed after {config.max_retries} retries: {e}")
                raise RetryError(f"{name} failed after {config.max_retries} retries") from e

            delay = calculate_delay(attempt, config)
            logger.warning(f"{name} failed (attempt {attempt + 1}/{config.max_retries + 1}): {e}. Retrying in {delay:.2f}s")
            sleep(delay)

    # Unreachable: the loop either returns or raises.
    raise RetryError(f"{name} failed after {config.max_retries} retries")
