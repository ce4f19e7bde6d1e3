"""
Retry policy for calls into external session stores.

Stores never retry internally; they surface BackendUnavailableError and
leave the decision to the caller. The session handler applies the policy
configured here around every store call. The default of a single attempt
means no retries at all.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from errors.exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_attempts: Total number of attempts, including the first call.
        initial_delay: Delay before the first retry in seconds.
        exponential_base: Base for exponential backoff (delays: d, d*b, d*b^2).
        max_delay: Maximum delay between retries in seconds, or None.
        retryable_exceptions: Exception types that trigger a retry.
    """
    max_attempts: int = 1
    initial_delay: float = 0.1
    exponential_base: float = 2.0
    max_delay: Optional[float] = None
    retryable_exceptions: Tuple[Type[Exception], ...] = field(
        default_factory=lambda: (BackendUnavailableError,)
    )

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


def calculate_delay(
    attempt: int,
    initial_delay: float,
    exponential_base: float,
    max_delay: Optional[float] = None
) -> float:
    """
    Calculate the delay for a given retry attempt using exponential backoff.

    The delay is calculated as: initial_delay * (exponential_base ^ attempt)

    Args:
        attempt: The current attempt number (0-indexed)
        initial_delay: The initial delay in seconds
        exponential_base: The base for exponential calculation
        max_delay: Optional maximum delay cap

    Returns:
        The calculated delay in seconds
    """
    delay = initial_delay * (exponential_base ** attempt)

    if max_delay is not None:
        delay = min(delay, max_delay)

    return delay


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    operation_name: Optional[str] = None,
    **kwargs: Any
) -> T:
    """
    Execute an async function with retry logic.

    Example usage:
        session = await retry_async(
            store.load,
            session_id,
            config=RetryConfig(max_attempts=3),
            operation_name="load"
        )

    Args:
        func: The async function to execute
        *args: Positional arguments to pass to the function
        config: Optional RetryConfig object with retry settings
        operation_name: Optional name for logging purposes
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The result of the function call

    Raises:
        The last retryable exception once all attempts are exhausted;
        non-retryable exceptions propagate immediately.
    """
    effective_config = config or RetryConfig()
    op_name = operation_name or getattr(func, "__name__", "operation")

    for attempt in range(effective_config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except effective_config.retryable_exceptions as e:
            if attempt == effective_config.max_attempts - 1:
                if effective_config.max_attempts > 1:
                    logger.error(
                        "Retry exhausted for operation '%s' after %d attempts",
                        op_name,
                        effective_config.max_attempts,
                        extra={
                            "extra_data": {
                                "operation": op_name,
                                "attempts": effective_config.max_attempts,
                                "last_error": str(e),
                                "error_type": type(e).__name__,
                            }
                        }
                    )
                raise

            delay = calculate_delay(
                attempt,
                effective_config.initial_delay,
                effective_config.exponential_base,
                effective_config.max_delay
            )

            logger.warning(
                "Retry attempt %d/%d for operation '%s' failed with %s. "
                "Retrying in %.2f seconds...",
                attempt + 1,
                effective_config.max_attempts,
                op_name,
                type(e).__name__,
                delay,
                extra={
                    "extra_data": {
                        "operation": op_name,
                        "attempt": attempt + 1,
                        "max_attempts": effective_config.max_attempts,
                        "delay_seconds": delay,
                    }
                }
            )

            await asyncio.sleep(delay)

    # max_attempts >= 1 guarantees the loop returns or raises
    raise AssertionError("unreachable")
