"""
Service error model with retry semantics.

Every error raised by the command pipeline, its handlers and the integration
adapters derives from ServiceError, so the boundary layer can map any failure
to a response from its ``code`` alone.
"""

from __future__ import annotations

import uuid
from typing import Any


class ServiceError(Exception):
    """Structured service error.

    Attributes:
        code: Machine-readable error code (see ErrorCode).
        message_safe: Message safe for logs, audit reasons and API responses.
        message_debug: Optional detail for debugging, never returned to callers.
        retryable: Whether repeating the operation may succeed.
        cause: The underlying exception, if any.
        debug_id: Short correlation id for support requests.
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(message_safe)
        self.code = code
        self.message_safe = message_safe
        self.message_debug = message_debug
        self.retryable = retryable
        self.cause = cause
        self.debug_id = debug_id or str(uuid.uuid4())[:8]

    def __str__(self) -> str:
        return self.message_safe

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message_safe={self.message_safe!r}, "
            f"retryable={self.retryable}, "
            f"debug_id={self.debug_id!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to an API-safe dictionary (debug details excluded)."""
        return {
            "code": self.code,
            "message": self.message_safe,
            "debug_id": self.debug_id,
        }


class RetryableError(ServiceError):
    """Transient failure: timeouts, 429/5xx from a collaborator, lost connections."""

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=True,
            cause=cause,
            debug_id=debug_id,
        )


class TerminalError(ServiceError):
    """Permanent failure: bad input, denied access, missing resource, business rule."""

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=False,
            cause=cause,
            debug_id=debug_id,
        )


class ErrorCode:
    """Standard error codes."""

    # Network/connectivity
    TIMEOUT = "TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Authentication/Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    POLICY_DENIED = "POLICY_DENIED"
    TENANT_MISMATCH = "TENANT_MISMATCH"

    # Validation / domain
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    STRUCTURAL_GATE = "STRUCTURAL_GATE"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"

    # Rate limiting
    RATE_LIMITED = "RATE_LIMITED"

    # Internal
    INTERNAL_ERROR = "INTERNAL_ERROR"
