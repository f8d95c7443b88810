"""
Service runtime layer for kanbax.

- RunContext: correlation and tenant ids for outbound calls
- ServiceError: structured errors with retry semantics
- ServiceHttpClient: pooled async HTTP client with correlation headers
- RetryPolicy: backoff configuration
"""

from .context import RunContext
from .errors import ErrorCode, RetryableError, ServiceError, TerminalError
from .http_client import ServiceHttpClient
from .retry import RetryPolicy, with_retry

__all__ = [
    "RunContext",
    "ErrorCode",
    "ServiceError",
    "RetryableError",
    "TerminalError",
    "ServiceHttpClient",
    "RetryPolicy",
    "with_retry",
]
