"""
ProjectService: project lifecycle.

Projects are created by human users, who become the owner and receive an
``owner`` membership in the same transaction.
"""

from __future__ import annotations

import re
import uuid
from typing import Any

from loguru import logger

from gatekit_core.auth.project_access import validate_project_access
from gatekit_core.domain.auth import AuthContext, AuthType, ProjectEnvironment, ProjectRole
from gatekit_core.infrastructure.postgres import get_db_connection
from gatekit_core.runtime.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)

PROJECT_COLUMNS = "id, name, description, environment, owner_id, created_at, updated_at"


def generate_slug(name: str) -> str:
    """Lowercase `name`, collapse non-alphanumeric runs to '-' and trim dashes."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _row_to_dict(row: tuple) -> dict[str, Any]:
    return {
        "id": row[0],
        "name": row[1],
        "description": row[2],
        "environment": row[3],
        "owner_id": str(row[4]) if row[4] else None,
        "created_at": row[5].isoformat() if row[5] else None,
        "updated_at": row[6].isoformat() if row[6] else None,
    }


def _require_user(auth_context: AuthContext | None, operation: str) -> str:
    if auth_context is None or auth_context.auth_type != AuthType.JWT or auth_context.user is None:
        raise ForbiddenError(f"{operation} requires user authentication")
    return auth_context.user.user_id


class ProjectService:
    """Service for project CRUD."""

    def create(
        self,
        auth_context: AuthContext | None,
        name: str,
        project_id: str | None = None,
        environment: str = ProjectEnvironment.DEVELOPMENT.value,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Create a project owned by the calling user.

        Raises:
            ForbiddenError: If called with an API key.
            BadRequestError: If no usable id can be derived from the name.
            ConflictError: If the id is taken.
        """
        owner_id = _require_user(auth_context, "Project creation")
        project_id = project_id or generate_slug(name)
        if not project_id:
            raise BadRequestError("Project id could not be derived from the name")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM projects WHERE id = %s", (project_id,))
            if cursor.fetchone():
                raise ConflictError(f"Project '{project_id}' already exists")

            cursor.execute(
                f"""
                INSERT INTO projects (id, name, description, environment, owner_id, updated_at)
                VALUES (%s, %s, %s, %s, %s, NOW())
                RETURNING {PROJECT_COLUMNS}
                """,
                (project_id, name, description, environment, owner_id),
            )
            row = cursor.fetchone()
            cursor.execute(
                """
                INSERT INTO project_members (id, project_id, user_id, role, updated_at)
                VALUES (%s, %s, %s, %s, NOW())
                """,
                (str(uuid.uuid4()), project_id, owner_id, ProjectRole.OWNER.value),
            )
            conn.commit()

        logger.info(f"Project {project_id} created by user {owner_id}")
        return _row_to_dict(row)

    def list_projects(self, auth_context: AuthContext | None) -> list[dict[str, Any]]:
        """Projects visible to the caller.

        An API key sees its own project, a global admin sees every project,
        and other users see projects they own or are members of.
        """
        if auth_context is None:
            raise ForbiddenError("Authentication context missing for project listing")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            if auth_context.auth_type == AuthType.API_KEY:
                cursor.execute(
                    f"SELECT {PROJECT_COLUMNS} FROM projects WHERE id = %s",
                    (auth_context.project.id,),
                )
            elif auth_context.user.is_admin:
                cursor.execute(f"SELECT {PROJECT_COLUMNS} FROM projects ORDER BY created_at")
            else:
                cursor.execute(
                    f"""
                    SELECT {PROJECT_COLUMNS} FROM projects
                    WHERE owner_id = %s
                       OR id IN (SELECT project_id FROM project_members WHERE user_id = %s)
                    ORDER BY created_at
                    """,
                    (auth_context.user.user_id, auth_context.user.user_id),
                )
            rows = cursor.fetchall()

        return [_row_to_dict(row) for row in rows]

    def get(self, auth_context: AuthContext | None, project_id: str) -> dict[str, Any]:
        """Project detail with its active API key count."""
        validate_project_access(auth_context, project_id, "project retrieval")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {PROJECT_COLUMNS} FROM projects WHERE id = %s", (project_id,))
            row = cursor.fetchone()
            if not row:
                raise NotFoundError(f"Project '{project_id}' not found")

            cursor.execute(
                "SELECT COUNT(*) FROM api_keys WHERE project_id = %s AND revoked_at IS NULL",
                (project_id,),
            )
            active_keys = cursor.fetchone()[0]

        project = _row_to_dict(row)
        project["active_api_keys"] = active_keys
        return project

    def update(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        """Update name, description or environment."""
        validate_project_access(auth_context, project_id, "project update")

        allowed = {k: v for k, v in changes.items() if k in ("name", "description", "environment")}
        assignments = ", ".join(f"{column} = %s" for column in allowed)
        set_clause = f"{assignments}, updated_at = NOW()" if assignments else "updated_at = NOW()"

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE projects SET {set_clause} WHERE id = %s RETURNING {PROJECT_COLUMNS}",
                (*allowed.values(), project_id),
            )
            row = cursor.fetchone()
            if not row:
                raise NotFoundError(f"Project '{project_id}' not found")
            conn.commit()

        logger.info(f"Project {project_id} updated: {sorted(allowed)}")
        return _row_to_dict(row)

    def delete(self, auth_context: AuthContext | None, project_id: str) -> dict[str, str]:
        """Delete a project.

        Raises:
            ForbiddenError: If called with an API key, or by a user who is neither
                the owner nor a global admin.
            NotFoundError: If the project does not exist.
            ConflictError: If the project still has active API keys.
        """
        validate_project_access(auth_context, project_id, "project deletion")
        user_id = _require_user(auth_context, "Project deletion")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT owner_id FROM projects WHERE id = %s", (project_id,))
            row = cursor.fetchone()
            if not row:
                raise NotFoundError(f"Project '{project_id}' not found")

            if not auth_context.user.is_admin and str(row[0]) != user_id:
                raise ForbiddenError("Only project owners or global admins can delete projects")

            cursor.execute(
                "SELECT COUNT(*) FROM api_keys WHERE project_id = %s AND revoked_at IS NULL",
                (project_id,),
            )
            active_keys = cursor.fetchone()[0]
            if active_keys > 0:
                raise ConflictError(f"Cannot delete project with {active_keys} active API keys")

            cursor.execute("DELETE FROM projects WHERE id = %s", (project_id,))
            conn.commit()

        logger.info(f"Project {project_id} deleted by user {user_id}")
        return {"message": f"Project '{project_id}' deleted"}
