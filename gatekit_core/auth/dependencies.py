"""
FastAPI dependencies for authorization.

Provides dependency injection for:
- Resolving an operation's credentials into an AuthContext
- Guarding project-scoped routes (existence, then ownership or membership role)
- Reading the auth context attached to the request
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Request

from gatekit_core.auth.api_key_service import ApiKeyService
from gatekit_core.auth.external_jwt import ExternalJwtAuthenticator
from gatekit_core.auth.jwt_service import JwtService
from gatekit_core.auth.policy import get_policy
from gatekit_core.auth.project_access import ProjectDirectory, check_project_guard
from gatekit_core.auth.resolver import AuthResolver
from gatekit_core.config import settings
from gatekit_core.domain.auth import AuthContext, ProjectRole
from gatekit_core.infrastructure.project_directory import PostgresProjectDirectory
from gatekit_core.runtime.errors import AuthenticationError


@lru_cache
def get_external_authenticator() -> ExternalJwtAuthenticator | None:
    """Process-wide external authenticator, so the JWKS cache is shared."""
    return ExternalJwtAuthenticator.from_settings()


def get_auth_resolver() -> AuthResolver:
    """Get auth resolver instance."""
    return AuthResolver(
        api_key_service=ApiKeyService(),
        local_jwt=JwtService() if settings.JWT_SECRET else None,
        external_jwt=get_external_authenticator(),
    )


def get_project_directory() -> ProjectDirectory:
    """Get project directory instance."""
    return PostgresProjectDirectory()


def get_auth_context(request: Request) -> AuthContext:
    """Get auth context from request state.

    Raises:
        AuthenticationError: If no authentication dependency ran for this request.
    """
    auth = getattr(request.state, "auth", None)
    if not auth:
        raise AuthenticationError("Not authenticated")
    return auth


def authenticate(operation: str):
    """Dependency factory that authenticates a request for an operation.

    Usage:
        @router.get("/me")
        def whoami(auth: AuthContext = Depends(authenticate("auth.whoami"))):
            ...

    Returns:
        A dependency returning the AuthContext (None for public operations).
    """
    policy = get_policy(operation)

    def _authenticate(
        request: Request,
        resolver: AuthResolver = Depends(get_auth_resolver),
    ) -> AuthContext | None:
        if policy.public:
            return None
        context = resolver.resolve(
            request.headers,
            policy,
            request_id=getattr(request.state, "request_id", None),
        )
        request.state.auth = context
        return context

    return _authenticate


def require_project_access(operation: str, min_role: ProjectRole | None = None):
    """Dependency factory for routes under ``/projects/{project}``.

    Authenticates the request, then checks that the project exists and the
    principal may act on it. JWT users additionally need `min_role` when given.

    Returns:
        A dependency returning the AuthContext.
    """

    def _require_project_access(
        project: str,
        request: Request,
        auth: AuthContext | None = Depends(authenticate(operation)),
        directory: ProjectDirectory = Depends(get_project_directory),
    ) -> AuthContext:
        if auth is None:
            raise AuthenticationError("Not authenticated")
        request.state.project = check_project_guard(
            directory, auth, project, min_role, operation
        )
        return auth

    return _require_project_access
