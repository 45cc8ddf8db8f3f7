"""Unit tests for the ServiceError hierarchy."""

import pytest

from gatekit_core.runtime.errors import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    GuardBypassError,
    NotFoundError,
    ServiceError,
    TerminalError,
)


class TestServiceError:
    """Tests for ServiceError base class."""

    def test_create_with_required_fields(self):
        error = ServiceError(code="TEST_ERROR", message_safe="Something went wrong")

        assert error.code == "TEST_ERROR"
        assert error.message_debug is None
        assert error.retryable is False
        assert error.debug_id is not None  # Auto-generated

    def test_str_representation(self):
        error = ServiceError(code="MY_CODE", message_safe="My message")

        assert str(error) == "[MY_CODE] My message"

    def test_to_dict_excludes_debug_info(self):
        error = ServiceError(
            code="X",
            message_safe="Safe",
            message_debug="secret internals",
            debug_id="abc123",
        )

        assert error.to_dict() == {"detail": "Safe", "code": "X", "debug_id": "abc123"}


class TestTerminalErrors:
    """Status codes and codes of the concrete errors."""

    @pytest.mark.parametrize(
        "cls,status,code",
        [
            (AuthenticationError, 401, ErrorCode.UNAUTHORIZED),
            (ForbiddenError, 403, ErrorCode.FORBIDDEN),
            (GuardBypassError, 403, ErrorCode.GUARD_BYPASS),
            (NotFoundError, 404, ErrorCode.NOT_FOUND),
            (BadRequestError, 400, ErrorCode.INVALID_INPUT),
            (ConflictError, 409, ErrorCode.CONFLICT),
        ],
    )
    def test_status_and_code(self, cls, status, code):
        error = cls("message")

        assert error.status_code == status
        assert error.code == code
        assert error.retryable is False
        assert isinstance(error, TerminalError)

    def test_guard_bypass_is_forbidden(self):
        assert issubclass(GuardBypassError, ForbiddenError)

    def test_cause_is_kept(self):
        cause = ValueError("underlying")
        error = AuthenticationError("Invalid or expired token", cause=cause)

        assert error.cause is cause
