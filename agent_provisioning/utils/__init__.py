"""Utility modules"""

from .retry import retry_async_operation, RetryError

__all__ = [
    "retry_async_operation",
    "RetryError"
]
