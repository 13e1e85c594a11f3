"""
Retry Utilities
Retry with exponential backoff for idempotent provider calls
(number search, releases). Purchases and agent creation are never retried.
"""

import asyncio
from typing import Optional, Callable, Awaitable, Any, Type, Tuple

from agent_provisioning.core.logging import get_logger
from agent_provisioning.core.config import settings

logger = get_logger(__name__)


class RetryError(Exception):
    """Raised when all retry attempts fail"""
    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


async def retry_async_operation(
    operation: Callable[[], Awaitable[Any]],
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    backoff_multiplier: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    operation_name: str = "operation",
    retry_if: Optional[Callable[[Exception], bool]] = None
) -> Any:
    """
    Execute an async operation with retry logic

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Maximum attempts (settings.api_max_retries if omitted)
        delay: Initial delay between attempts (settings.api_retry_delay if omitted)
        backoff_multiplier: Multiplier for exponential backoff
        exceptions: Exception types that trigger another attempt
        operation_name: Name for logging purposes
        retry_if: Further narrows `exceptions`; an error it rejects is
            raised immediately

    Returns:
        Result of the operation

    Raises:
        RetryError: If all attempts fail
        Exception: A matching error that `retry_if` rejects, unchanged
    """
    max_retries = settings.api_max_retries if max_retries is None else max_retries
    delay = settings.api_retry_delay if delay is None else delay
    max_retries = max(1, max_retries)
    last_exception = None
    current_delay = delay

    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except exceptions as e:
            if retry_if is not None and not retry_if(e):
                logger.warning(f"Not retrying {operation_name}: {e}")
                raise
            last_exception = e
            logger.warning(
                f"Attempt {attempt}/{max_retries} failed for {operation_name}: {e}"
            )

            if attempt < max_retries:
                logger.info(f"Retrying {operation_name} in {current_delay:.1f}s...")
                await asyncio.sleep(current_delay)
                current_delay *= backoff_multiplier
            else:
                logger.error(f"All {max_retries} attempts failed for {operation_name}")

    raise RetryError(
        f"Failed {operation_name} after {max_retries} attempts",
        last_exception=last_exception
    )
