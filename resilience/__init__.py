"""
Resilience patterns for calls into external session stores.
"""

from resilience.retry import RetryConfig, calculate_delay, retry_async

__all__ = [
    "RetryConfig",
    "calculate_delay",
    "retry_async",
]
