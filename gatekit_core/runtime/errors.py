"""
Standardized error model for the gatekit API.

Every failure that reaches a caller is a ServiceError carrying a machine-readable
code, a message that is safe to return, and the HTTP status it maps to. Store
errors (psycopg exceptions) are deliberately not part of this hierarchy and
propagate unchanged.
"""

from __future__ import annotations

import uuid
from typing import Any


# Common error codes
class ErrorCode:
    """Standard error codes for common failure scenarios."""

    # Authentication/Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    GUARD_BYPASS = "GUARD_BYPASS"

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Internal
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ServiceError(Exception):
    """Standardized service error.

    ServiceError carries structured information about failures:
    - code: Machine-readable error code (e.g., "NOT_FOUND")
    - message_safe: Human-readable message safe for logs/users
    - message_debug: Detailed debug info (never returned to callers)
    - retryable: Whether the operation can be retried
    - cause: The underlying exception, if any
    - debug_id: Unique ID for support correlation

    Attributes:
        status_code: HTTP status returned by the API error handler.
    """

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        """Initialize a ServiceError.

        Args:
            code: Machine-readable error code.
            message_safe: Human-readable message safe for logs.
            message_debug: Optional detailed debug message.
            retryable: Whether the operation can be retried.
            cause: Optional underlying exception.
            debug_id: Optional correlation ID (auto-generated if None).
        """
        super().__init__(message_safe)
        self.code = code
        self.message_safe = message_safe
        self.message_debug = message_debug
        self.retryable = retryable
        self.cause = cause
        self.debug_id = debug_id or str(uuid.uuid4())[:8]

    def __str__(self) -> str:
        """Return string representation."""
        return f"[{self.code}] {self.message_safe}"

    def __repr__(self) -> str:
        """Return detailed representation."""
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message_safe={self.message_safe!r}, "
            f"retryable={self.retryable}, "
            f"debug_id={self.debug_id!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses.

        Returns:
            Dictionary with error details (excludes debug info).
        """
        return {
            "detail": self.message_safe,
            "code": self.code,
            "debug_id": self.debug_id,
        }


class TerminalError(ServiceError):
    """Error that indicates the operation should not be retried.

    Subclasses fix the error code and HTTP status so call sites only
    supply the message.
    """

    default_code: str = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
        code: str | None = None,
    ):
        super().__init__(
            code=code or self.default_code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=False,
            cause=cause,
            debug_id=debug_id,
        )


class AuthenticationError(TerminalError):
    """No credential, or the credential is malformed, invalid, expired or revoked."""

    status_code = 401
    default_code = ErrorCode.UNAUTHORIZED


class ForbiddenError(TerminalError):
    """Valid credential with insufficient scope, role or project access."""

    status_code = 403
    default_code = ErrorCode.FORBIDDEN


class GuardBypassError(ForbiddenError):
    """Auth context missing where a guard must already have set it.

    Signals a defect rather than a user error. It is still surfaced as a 403
    so the response does not leak internals.
    """

    default_code = ErrorCode.GUARD_BYPASS


class NotFoundError(TerminalError):
    """Referenced project, message, key or identity does not exist."""

    status_code = 404
    default_code = ErrorCode.NOT_FOUND


class BadRequestError(TerminalError):
    """Request is well-formed but violates a business rule."""

    status_code = 400
    default_code = ErrorCode.INVALID_INPUT


class ConflictError(TerminalError):
    """Request conflicts with existing state (duplicate ids, linked aliases)."""

    status_code = 409
    default_code = ErrorCode.CONFLICT
