"""Unit tests for domain exceptions."""

import pytest

from kanbax_core.domain.exceptions import (
    AuthorizationError,
    InvariantViolationError,
    NotFoundError,
    PolicyDeniedError,
    StructuralGateError,
    TenantIsolationError,
    ValidationError,
    is_forbidden,
)
from kanbax_core.runtime.errors import ErrorCode, ServiceError, TerminalError


class TestCodes:
    @pytest.mark.parametrize(
        "error_type, code",
        [
            (ValidationError, ErrorCode.INVALID_INPUT),
            (AuthorizationError, ErrorCode.FORBIDDEN),
            (TenantIsolationError, ErrorCode.TENANT_MISMATCH),
            (PolicyDeniedError, ErrorCode.POLICY_DENIED),
            (NotFoundError, ErrorCode.NOT_FOUND),
            (StructuralGateError, ErrorCode.STRUCTURAL_GATE),
            (InvariantViolationError, ErrorCode.INVARIANT_VIOLATION),
        ],
    )
    def test_code_per_type(self, error_type, code):
        error = error_type("nope", message_debug="details")

        assert error.code == code
        assert str(error) == "nope"
        assert error.message_debug == "details"
        assert isinstance(error, TerminalError)

    def test_tenant_isolation_is_an_authorization_error(self):
        assert issubclass(TenantIsolationError, AuthorizationError)


class TestIsForbidden:
    @pytest.mark.parametrize("error_type", [AuthorizationError, TenantIsolationError, PolicyDeniedError])
    def test_forbidden_class(self, error_type):
        assert is_forbidden(error_type("denied"))

    @pytest.mark.parametrize("error_type", [ValidationError, NotFoundError, StructuralGateError])
    def test_not_forbidden(self, error_type):
        assert not is_forbidden(error_type("other"))

    def test_plain_exceptions(self):
        assert not is_forbidden(ValueError("x"))
        assert is_forbidden(ServiceError(code=ErrorCode.FORBIDDEN, message_safe="x"))
