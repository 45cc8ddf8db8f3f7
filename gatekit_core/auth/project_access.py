"""
Project access validation.

Two layers enforce that a principal may act on a project:

1. The request guard (`check_project_guard`) runs before the route handler. It
   confirms the project exists, that an API key belongs to it, and that a JWT
   user owns it or holds a sufficient membership role.
2. Every business service re-runs `validate_project_access` before touching data,
   so a route that forgets its guard still cannot leak another tenant's data.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from loguru import logger

from gatekit_core.domain.auth import (
    AuthContext,
    AuthType,
    ProjectRef,
    ProjectRole,
    role_satisfies,
)
from gatekit_core.runtime.errors import ForbiddenError, GuardBypassError, NotFoundError


@runtime_checkable
class ProjectDirectory(Protocol):
    """Read access to projects and memberships."""

    def get_project(self, project_id: str) -> ProjectRef | None:
        """Return the project, or None if it does not exist."""
        ...

    def get_member_role(self, project_id: str, user_id: str) -> ProjectRole | None:
        """Return the user's membership role, or None if not a member."""
        ...


def validate_project_access(
    auth_context: AuthContext | None,
    project_id: str,
    operation: str,
) -> None:
    """Confirm the authenticated principal may act on `project_id`.

    Args:
        auth_context: Context produced by the auth resolver.
        project_id: Target project id.
        operation: Human-readable operation name used in error messages.

    Raises:
        GuardBypassError: If the context is missing.
        ForbiddenError: If the principal may not act on the project.
    """
    if auth_context is None:
        message = (
            f"SECURITY ERROR: Authentication context missing for {operation}. "
            "This indicates a guard bypass."
        )
        logger.critical(message)
        raise GuardBypassError(message)

    if auth_context.auth_type == AuthType.API_KEY:
        if auth_context.project is None or auth_context.project.id != project_id:
            raise ForbiddenError(f"API key does not have access to perform {operation}")
        return

    if auth_context.auth_type == AuthType.JWT:
        if auth_context.user is None or not auth_context.user.user_id:
            raise ForbiddenError(f"User context required for {operation}")
        return

    raise ForbiddenError(f"Invalid authentication type for {operation}")


def get_project_with_access(
    directory: ProjectDirectory,
    project_id: str,
    auth_context: AuthContext | None,
    operation: str,
) -> ProjectRef:
    """Load a project, then validate access to it.

    Raises:
        NotFoundError: If the project does not exist.
        ForbiddenError: If access validation fails.
    """
    project = directory.get_project(project_id)
    if project is None:
        raise NotFoundError(f"Project '{project_id}' not found")

    validate_project_access(auth_context, project.id, operation)
    return project


def check_membership(
    directory: ProjectDirectory,
    project: ProjectRef,
    user_id: str,
    min_role: ProjectRole | None = None,
) -> bool:
    """Return True if the user owns the project or holds a sufficient role."""
    if project.owner_id == user_id:
        return True

    role = directory.get_member_role(project.id, user_id)
    if role is None:
        return False
    if min_role is None:
        return True
    return role_satisfies(role, min_role)


def check_project_guard(
    directory: ProjectDirectory,
    auth_context: AuthContext | None,
    project_id: str,
    min_role: ProjectRole | None = None,
    operation: str = "project access",
) -> ProjectRef:
    """Request-level project guard.

    Existence is checked before access, so an unknown project is a 404 for
    every principal. The principal is then checked by `validate_project_access`;
    JWT users must also own the project or hold a membership of `min_role`.

    Raises:
        NotFoundError: If the project does not exist.
        ForbiddenError: If the principal may not access the project.
    """
    project = get_project_with_access(directory, project_id, auth_context, operation)

    if auth_context.auth_type == AuthType.API_KEY:
        return project

    user_id = auth_context.user.user_id
    if project.owner_id == user_id:
        return project

    role = directory.get_member_role(project.id, user_id)
    if role is None:
        raise ForbiddenError("You do not have access to this project")

    if min_role is not None and not role_satisfies(role, min_role):
        raise ForbiddenError(
            f"Insufficient project role. Required role: {ProjectRole(min_role).value}"
        )
    return project
