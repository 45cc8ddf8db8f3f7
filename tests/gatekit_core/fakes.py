"""
Fake implementations of gatekit_core protocols and services for testing.
"""

from typing import Any

from gatekit_core.domain.auth import AuthContext, ProjectRef, ProjectRole, UserRef
from gatekit_core.messaging.identity_resolver import AliasMatch
from gatekit_core.runtime.errors import AuthenticationError


class FakeProjectDirectory:
    def __init__(
        self,
        projects: list[ProjectRef] | None = None,
        roles: dict[tuple[str, str], ProjectRole] | None = None,
    ):
        self.projects = {p.id: p for p in projects or []}
        self.roles = roles or {}
        self.role_lookups: list[tuple[str, str]] = []

    def get_project(self, project_id: str) -> ProjectRef | None:
        return self.projects.get(project_id)

    def get_member_role(self, project_id: str, user_id: str) -> ProjectRole | None:
        self.role_lookups.append((project_id, user_id))
        return self.roles.get((project_id, user_id))


class FakeApiKeyService:
    """Validates keys against an in-memory table of records."""

    def __init__(self, records: dict[str, dict[str, Any]] | None = None):
        self.records = records or {}
        self.validate_calls: list[str] = []

    def validate_key(self, raw_key: str) -> dict[str, Any] | None:
        self.validate_calls.append(raw_key)
        return self.records.get(raw_key)


class FakeTokenAuthenticator:
    """Stands in for both the local and the external JWT authenticators."""

    def __init__(self, users: dict[str, UserRef] | None = None, error: Exception | None = None):
        self.users = users or {}
        self.error = error
        self.calls: list[str] = []

    def authenticate(self, token: str) -> UserRef:
        self.calls.append(token)
        if self.error is not None:
            raise self.error
        if token not in self.users:
            raise AuthenticationError("Invalid or expired token")
        return self.users[token]


class FakeAliasStore:
    def __init__(self, matches: list[AliasMatch] | None = None):
        self.matches = matches or []
        self.calls: list[tuple[str, list[tuple[str, str]]]] = []

    def find_aliases(self, project_id: str, keys: list[tuple[str, str]]) -> list[AliasMatch]:
        self.calls.append((project_id, list(keys)))
        wanted = set(keys)
        return [m for m in self.matches if (m.platform_id, m.provider_user_id) in wanted]


def api_key_context(project_id: str = "proj-1", scopes=(), owner_id: str = "owner-1") -> AuthContext:
    return AuthContext.for_api_key(
        project=ProjectRef(id=project_id, name="Project", owner_id=owner_id),
        key_id="key-1",
        key_name="Test Key",
        scopes=list(scopes),
    )


def user_context(user_id: str = "user-1", is_admin: bool = False) -> AuthContext:
    return AuthContext.for_user(
        UserRef(user_id=user_id, email=f"{user_id}@example.com", name=user_id, is_admin=is_admin)
    )
