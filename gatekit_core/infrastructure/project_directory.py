"""
PostgreSQL-backed project directory.
"""

from __future__ import annotations

import psycopg

from gatekit_core.config import settings
from gatekit_core.domain.auth import ProjectRef, ProjectRole


class PostgresProjectDirectory:
    """Project and membership lookups used by the project access guard."""

    def __init__(self, dsn: str | None = None):
        self.dsn = dsn or settings.POSTGRES_DSN

    def get_project(self, project_id: str) -> ProjectRef | None:
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id, name, environment, owner_id FROM projects WHERE id = %s",
                    (project_id,),
                )
                row = cur.fetchone()

        if not row:
            return None
        return ProjectRef(
            id=row[0],
            name=row[1],
            environment=row[2],
            owner_id=str(row[3]) if row[3] else None,
        )

    def get_member_role(self, project_id: str, user_id: str) -> ProjectRole | None:
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT role FROM project_members WHERE project_id = %s AND user_id = %s",
                    (project_id, user_id),
                )
                row = cur.fetchone()

        return ProjectRole(row[0]) if row else None
