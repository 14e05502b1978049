"""
Retry decorator with exponential backoff.

Used for outbound HTTP calls whose failures are usually transient: the
notification relay (SMS/email) and HimKosh double verification.
"""

import asyncio
import functools
import logging
import random
from typing import Callable, Type, Tuple, Any

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        max_retries: Retry attempts after the first call
            (total attempts = max_retries + 1)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Delay formula is base_delay * (exponential_base ** attempt)
        jitter: Add up to ±20% random jitter to each delay
        exceptions: Only these exception types trigger a retry; others
            propagate immediately

    Example:
        @retry_with_backoff(max_retries=2, exceptions=(httpx.TransportError,))
        async def post_payload(client, payload):
            ...

    Note:
        The last failure is logged at ERROR level and re-raised.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(
                            f"{func.__name__} failed after {max_retries + 1} attempts: {e}",
                            exc_info=True
                        )
                        raise

                    delay = min(
                        base_delay * (exponential_base ** attempt),
                        max_delay
                    )

                    if jitter:
                        jitter_amount = delay * 0.2
                        delay = max(0.0, delay + random.uniform(-jitter_amount, jitter_amount))

                    logger.info(
                        f"{func.__name__} attempt {attempt + 1}/{max_retries + 1} "
                        f"failed with {type(e).__name__}: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )

                    await asyncio.sleep(delay)

        return wrapper
    return decorator
