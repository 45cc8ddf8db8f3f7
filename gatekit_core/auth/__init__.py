"""
Auth module for gatekit.

Provides API key authentication, local and external JWT authentication,
the auth resolver, project access validation, and authorization dependencies.
"""

from gatekit_core.auth.api_key_service import ApiKeyService
from gatekit_core.auth.user_service import UserService
from gatekit_core.auth.jwt_service import JwtService
from gatekit_core.auth.resolver import AuthResolver
from gatekit_core.auth.project_access import (
    get_project_with_access,
    validate_project_access,
)
from gatekit_core.auth.dependencies import (
    authenticate,
    get_auth_context,
    require_project_access,
)
from gatekit_core.auth.middleware import RequestContextMiddleware

__all__ = [
    "ApiKeyService",
    "UserService",
    "JwtService",
    "AuthResolver",
    "RequestContextMiddleware",
    "authenticate",
    "get_auth_context",
    "get_project_with_access",
    "require_project_access",
    "validate_project_access",
]
