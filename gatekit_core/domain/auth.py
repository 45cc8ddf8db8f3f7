"""
Authentication and authorization domain models.

This module defines the core data structures for auth:
- ApiScope: Permission scopes granted to API keys
- ProjectRole: Ordered membership roles
- AuthType: Which credential authenticated the request
- ProjectRef / UserRef: Principal references carried by the context
- AuthContext: Request-scoped auth context
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ApiScope(str, Enum):
    """Authorization scopes for API keys.

    Every resource follows a read/write pattern. messages:write covers
    send, delete, react and unreact; keys:write covers create, revoke and roll.
    """

    IDENTITIES_READ = "identities:read"
    IDENTITIES_WRITE = "identities:write"
    PROJECTS_READ = "projects:read"
    PROJECTS_WRITE = "projects:write"
    PLATFORMS_READ = "platforms:read"
    PLATFORMS_WRITE = "platforms:write"
    MESSAGES_READ = "messages:read"
    MESSAGES_WRITE = "messages:write"
    WEBHOOKS_READ = "webhooks:read"
    WEBHOOKS_WRITE = "webhooks:write"
    KEYS_READ = "keys:read"
    KEYS_WRITE = "keys:write"
    MEMBERS_READ = "members:read"
    MEMBERS_WRITE = "members:write"


ALL_SCOPES: frozenset[str] = frozenset(scope.value for scope in ApiScope)


class ProjectRole(str, Enum):
    """Project membership roles, highest first."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


ROLE_RANK: dict[ProjectRole, int] = {
    ProjectRole.OWNER: 4,
    ProjectRole.ADMIN: 3,
    ProjectRole.MEMBER: 2,
    ProjectRole.VIEWER: 1,
}


def role_satisfies(actual: ProjectRole | str, required: ProjectRole | str) -> bool:
    """Return True if `actual` ranks at or above `required`."""
    return ROLE_RANK[ProjectRole(actual)] >= ROLE_RANK[ProjectRole(required)]


class AuthType(str, Enum):
    """Credential type that produced an AuthContext."""

    API_KEY = "api-key"
    JWT = "jwt"


class ProjectEnvironment(str, Enum):
    """Deployment environment of a project; drives the API key prefix."""

    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProjectRef:
    """Project reference resolved from the store."""

    id: str
    name: str | None = None
    environment: str = ProjectEnvironment.DEVELOPMENT.value
    owner_id: str | None = None


@dataclass(frozen=True)
class UserRef:
    """Authenticated human principal."""

    user_id: str
    email: str | None = None
    name: str | None = None
    is_admin: bool = False


@dataclass(frozen=True)
class AuthContext:
    """Request-scoped authentication context.

    Built fresh per request by the auth resolver and never persisted.
    An api-key context must carry a project; a jwt context must carry a user.
    """

    auth_type: AuthType
    project: ProjectRef | None = None
    user: UserRef | None = None
    api_key_id: str | None = None
    api_key_name: str | None = None
    scopes: frozenset[str] = field(default_factory=frozenset)
    request_id: str | None = None

    def __post_init__(self) -> None:
        if self.auth_type == AuthType.API_KEY and self.project is None:
            raise ValueError("API key auth context requires a project")
        if self.auth_type == AuthType.JWT and self.user is None:
            raise ValueError("JWT auth context requires a user")

    @classmethod
    def for_api_key(
        cls,
        project: ProjectRef,
        key_id: str,
        scopes: frozenset[str] | list[str],
        key_name: str | None = None,
        request_id: str | None = None,
    ) -> AuthContext:
        """Build the context for a validated API key."""
        return cls(
            auth_type=AuthType.API_KEY,
            project=project,
            api_key_id=key_id,
            api_key_name=key_name,
            scopes=frozenset(scopes),
            request_id=request_id,
        )

    @classmethod
    def for_user(cls, user: UserRef, request_id: str | None = None) -> AuthContext:
        """Build the context for a verified JWT user."""
        return cls(auth_type=AuthType.JWT, user=user, request_id=request_id)

    @property
    def is_api_key(self) -> bool:
        return self.auth_type == AuthType.API_KEY

    @property
    def principal_label(self) -> str:
        """Short identifier for log lines."""
        if self.is_api_key:
            return f"key:{self.api_key_id}"
        if self.user is not None:
            return f"user:{self.user.user_id}"
        return "unknown"
