"""
Service runtime layer for gatekit.

This package provides the shared error model:
- ServiceError: Standardized errors mapped to HTTP status codes
- AuthenticationError / ForbiddenError / GuardBypassError: auth failures
- NotFoundError / BadRequestError / ConflictError: business failures
"""

from .errors import (
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

__all__ = [
    "AuthenticationError",
    "BadRequestError",
    "ConflictError",
    "ErrorCode",
    "ForbiddenError",
    "GuardBypassError",
    "NotFoundError",
    "ServiceError",
    "TerminalError",
]
