"""
Domain exceptions for the command pipeline.

Only AuthorizationError (and its TenantIsolationError subclass) and
PolicyDeniedError are recorded in the audit trail; every other error passes
through the pipeline untouched.
"""

from kanbax_core.runtime.errors import ErrorCode, ServiceError, TerminalError


class KanbaxError(TerminalError):
    """Base exception for all command failures."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, message_debug: str | None = None):
        super().__init__(code=type(self).code, message_safe=message, message_debug=message_debug)


class ValidationError(KanbaxError):
    """Malformed command payload; raised before any authorization attempt."""

    code = ErrorCode.INVALID_INPUT


class AuthorizationError(KanbaxError):
    """The principal's permissions do not cover the command."""

    code = ErrorCode.FORBIDDEN


class TenantIsolationError(AuthorizationError):
    """A command, principal or policy context crosses a tenant boundary."""

    code = ErrorCode.TENANT_MISMATCH


class PolicyDeniedError(KanbaxError):
    """The policy engine denied the command."""

    code = ErrorCode.POLICY_DENIED


class NotFoundError(KanbaxError):
    """Referenced resource is missing or belongs to another tenant."""

    code = ErrorCode.NOT_FOUND


class StructuralGateError(KanbaxError):
    """The resource's provenance forbids the requested mutation."""

    code = ErrorCode.STRUCTURAL_GATE


class InvariantViolationError(KanbaxError):
    """A resource handed to the repository breaks a persistence invariant."""

    code = ErrorCode.INVARIANT_VIOLATION


FORBIDDEN_CODES = frozenset({
    ErrorCode.FORBIDDEN,
    ErrorCode.POLICY_DENIED,
    ErrorCode.TENANT_MISMATCH,
})


def is_forbidden(error: Exception) -> bool:
    """True if the boundary layer should answer with a forbidden-class response."""
    return isinstance(error, ServiceError) and error.code in FORBIDDEN_CODES
