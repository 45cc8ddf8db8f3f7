"""
MemberService: project membership administration.

Membership roles are ordered owner > admin > member > viewer. The project owner
is implicit in `projects.owner_id` and can be neither re-roled nor removed.
Unregistered people are invited by a single-use token link.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from gatekit_core.auth.project_access import (
    ProjectDirectory,
    check_membership,
    get_project_with_access,
)
from gatekit_core.config import settings
from gatekit_core.domain.auth import AuthContext, AuthType, ProjectRef, ProjectRole
from gatekit_core.infrastructure.postgres import get_db_connection
from gatekit_core.infrastructure.project_directory import PostgresProjectDirectory
from gatekit_core.runtime.errors import BadRequestError, ForbiddenError, NotFoundError


def _row_to_member(row: tuple) -> dict[str, Any]:
    return {
        "user_id": str(row[0]),
        "email": row[1],
        "name": row[2],
        "role": row[3],
        "created_at": row[4].isoformat() if row[4] else None,
    }


class MemberService:
    """Service for listing and managing project members."""

    def __init__(self, directory: ProjectDirectory | None = None):
        self.directory = directory or PostgresProjectDirectory()

    def _load_project(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        operation: str,
        min_role: ProjectRole,
    ) -> ProjectRef:
        """Load the project and re-check the caller's role.

        API keys are authorized by scope alone; users need `min_role`.
        """
        project = get_project_with_access(self.directory, project_id, auth_context, operation)
        if auth_context.auth_type == AuthType.JWT and not check_membership(
            self.directory, project, auth_context.user.user_id, min_role
        ):
            raise ForbiddenError(
                f"Insufficient project role. Required role: {min_role.value}"
            )
        return project

    def list_members(self, auth_context: AuthContext | None, project_id: str) -> list[dict[str, Any]]:
        project = self._load_project(auth_context, project_id, "member listing", ProjectRole.VIEWER)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT u.id, u.email, u.name, pm.role, pm.created_at
                FROM project_members pm
                JOIN users u ON u.id = pm.user_id
                WHERE pm.project_id = %s
                ORDER BY pm.created_at
                """,
                (project.id,),
            )
            rows = cursor.fetchall()

        return [_row_to_member(row) for row in rows]

    def add_member(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        email: str,
        role: str,
    ) -> dict[str, Any]:
        """Add a user to the project, or change their role if already a member.

        Raises:
            BadRequestError: If `role` is owner.
            NotFoundError: If no user has this email.
        """
        project = self._load_project(auth_context, project_id, "member addition", ProjectRole.ADMIN)
        if ProjectRole(role) == ProjectRole.OWNER:
            raise BadRequestError("Cannot assign the owner role")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id, email, name FROM users WHERE email = %s", (email,))
            user = cursor.fetchone()
            if not user:
                raise NotFoundError(f"User with email '{email}' not found")

            cursor.execute(
                """
                INSERT INTO project_members (id, project_id, user_id, role, updated_at)
                VALUES (gen_random_uuid(), %s, %s, %s, NOW())
                ON CONFLICT (project_id, user_id)
                DO UPDATE SET role = EXCLUDED.role, updated_at = NOW()
                RETURNING role, created_at
                """,
                (project.id, user[0], role),
            )
            member_role, created_at = cursor.fetchone()
            conn.commit()

        logger.info(f"User {user[0]} added to project {project.id} as {member_role}")
        return _row_to_member((user[0], user[1], user[2], member_role, created_at))

    def update_member_role(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        user_id: str,
        role: str,
    ) -> dict[str, Any]:
        """Change a member's role.

        Raises:
            BadRequestError: If the target is the project owner, or `role` is owner.
            NotFoundError: If the user is not a member.
        """
        project = self._load_project(auth_context, project_id, "member update", ProjectRole.ADMIN)
        if project.owner_id == user_id:
            raise BadRequestError("Cannot change role of project owner")
        if ProjectRole(role) == ProjectRole.OWNER:
            raise BadRequestError("Cannot assign the owner role")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE project_members SET role = %s, updated_at = NOW()
                WHERE project_id = %s AND user_id = %s
                RETURNING user_id, created_at
                """,
                (role, project.id, user_id),
            )
            updated = cursor.fetchone()
            if not updated:
                raise NotFoundError("Member not found")

            cursor.execute("SELECT email, name FROM users WHERE id = %s", (user_id,))
            email, name = cursor.fetchone()
            conn.commit()

        logger.info(f"User {user_id} role in project {project.id} changed to {role}")
        return _row_to_member((updated[0], email, name, role, updated[1]))

    def remove_member(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        user_id: str,
    ) -> dict[str, str]:
        """Remove a member from the project.

        Raises:
            BadRequestError: If the target is the project owner.
            NotFoundError: If the user is not a member.
        """
        project = self._load_project(auth_context, project_id, "member removal", ProjectRole.ADMIN)
        if project.owner_id == user_id:
            raise BadRequestError("Cannot remove project owner from members")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM project_members WHERE project_id = %s AND user_id = %s",
                (project.id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Member not found")
            conn.commit()

        logger.info(f"User {user_id} removed from project {project.id}")
        return {"message": "Member removed successfully"}

    def invite(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        email: str,
        base_url: str | None = None,
    ) -> dict[str, Any]:
        """Invite someone to the project by email.

        A registered user joins immediately as member. Anyone else gets a
        single-use invite link valid for `settings.INVITE_TTL_HOURS`.

        Raises:
            BadRequestError: If the user is already a member.
        """
        project = self._load_project(auth_context, project_id, "member invitation", ProjectRole.MEMBER)
        base_url = (base_url or settings.FRONTEND_URL).rstrip("/")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id FROM users WHERE email = %s", (email,))
            user = cursor.fetchone()

            if user:
                cursor.execute(
                    "SELECT 1 FROM project_members WHERE project_id = %s AND user_id = %s",
                    (project.id, user[0]),
                )
                if cursor.fetchone() or project.owner_id == str(user[0]):
                    raise BadRequestError("User is already a member of this project")

                cursor.execute(
                    """
                    INSERT INTO project_members (id, project_id, user_id, role, updated_at)
                    VALUES (gen_random_uuid(), %s, %s, %s, NOW())
                    """,
                    (project.id, user[0], ProjectRole.MEMBER.value),
                )
                conn.commit()
                logger.info(f"User {user[0]} added to project {project.id} by invitation")
                return {
                    "email": email,
                    "invite_link": None,
                    "expires_at": None,
                    "message": "User added to project successfully",
                }

            token = secrets.token_hex(32)
            expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.INVITE_TTL_HOURS)
            cursor.execute(
                """
                INSERT INTO invites (id, email, project_id, token, expires_at)
                VALUES (gen_random_uuid(), %s, %s, %s, %s)
                """,
                (email, project.id, token, expires_at),
            )
            conn.commit()

        logger.info(f"Invite created for project {project.id}, expires {expires_at.isoformat()}")
        return {
            "email": email,
            "invite_link": f"{base_url}/invite/{token}",
            "expires_at": expires_at.isoformat(),
            "message": "Invitation created",
        }
