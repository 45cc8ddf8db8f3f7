"""
IdentityRepository: PostgreSQL storage for identities and aliases.
"""

from __future__ import annotations

import uuid
from typing import Any

from psycopg.types.json import Jsonb

from gatekit_core.infrastructure.postgres import get_db_connection

IDENTITY_COLUMNS = "id, project_id, display_name, email, metadata, created_at, updated_at"
ALIAS_COLUMNS = """
    id, identity_id, project_id, platform_id, platform, provider_user_id,
    provider_user_display, linked_at, link_method
"""


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _row_to_alias(row: tuple) -> dict[str, Any]:
    return {
        "id": str(row[0]),
        "identity_id": str(row[1]),
        "project_id": row[2],
        "platform_id": str(row[3]),
        "platform": row[4],
        "provider_user_id": row[5],
        "provider_user_display": row[6],
        "linked_at": _iso(row[7]),
        "link_method": row[8],
    }


def _row_to_identity(row: tuple, aliases: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "id": str(row[0]),
        "project_id": row[1],
        "display_name": row[2],
        "email": row[3],
        "metadata": row[4],
        "created_at": _iso(row[5]),
        "updated_at": _iso(row[6]),
        "aliases": aliases,
    }


def _aliases_for(cursor, identity_ids: list[str]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {identity_id: [] for identity_id in identity_ids}
    if not identity_ids:
        return grouped

    cursor.execute(
        f"""
        SELECT {ALIAS_COLUMNS}
        FROM identity_aliases
        WHERE identity_id::text = ANY(%s)
        ORDER BY linked_at
        """,
        (identity_ids,),
    )
    for row in cursor.fetchall():
        alias = _row_to_alias(row)
        grouped.setdefault(alias["identity_id"], []).append(alias)
    return grouped


class PostgresIdentityRepository:
    """Repository for identity records in PostgreSQL."""

    def get_platform_types(self, project_id: str, platform_ids: list[str]) -> dict[str, str]:
        if not platform_ids:
            return {}

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, platform FROM project_platforms
                WHERE project_id = %s AND id::text = ANY(%s)
                """,
                (project_id, platform_ids),
            )
            rows = cursor.fetchall()

        return {str(row[0]): row[1] for row in rows}

    def find_aliases_by_users(self, keys: list[tuple[str, str]]) -> list[dict[str, Any]]:
        if not keys:
            return []

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {ALIAS_COLUMNS}
                FROM identity_aliases
                WHERE (platform_id::text, provider_user_id) IN (
                    SELECT * FROM unnest(%s::text[], %s::text[])
                )
                """,
                ([k[0] for k in keys], [k[1] for k in keys]),
            )
            rows = cursor.fetchall()

        return [_row_to_alias(row) for row in rows]

    def create_identity(
        self,
        project_id: str,
        display_name: str | None,
        email: str | None,
        metadata: dict[str, Any] | None,
        aliases: list[dict[str, Any]],
    ) -> dict[str, Any]:
        identity_id = str(uuid.uuid4())

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO identities (id, project_id, display_name, email, metadata, updated_at)
                VALUES (%s, %s, %s, %s, %s, NOW())
                RETURNING {IDENTITY_COLUMNS}
                """,
                (
                    identity_id,
                    project_id,
                    display_name,
                    email,
                    Jsonb(metadata) if metadata is not None else None,
                ),
            )
            row = cursor.fetchone()
            cursor.executemany(
                """
                INSERT INTO identity_aliases
                    (id, identity_id, project_id, platform_id, platform,
                     provider_user_id, provider_user_display, link_method)
                VALUES (%s, %s, %s, %s, %s, %s, %s, 'manual')
                """,
                [
                    (
                        str(uuid.uuid4()),
                        identity_id,
                        project_id,
                        alias["platform_id"],
                        alias["platform"],
                        alias["provider_user_id"],
                        alias.get("provider_user_display"),
                    )
                    for alias in aliases
                ],
            )
            created_aliases = _aliases_for(cursor, [identity_id])[identity_id]
            conn.commit()

        return _row_to_identity(row, created_aliases)

    def list_identities(self, project_id: str) -> list[dict[str, Any]]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {IDENTITY_COLUMNS} FROM identities
                WHERE project_id = %s
                ORDER BY created_at DESC
                """,
                (project_id,),
            )
            rows = cursor.fetchall()
            aliases = _aliases_for(cursor, [str(row[0]) for row in rows])

        return [_row_to_identity(row, aliases.get(str(row[0]), [])) for row in rows]

    def get_identity(self, project_id: str, identity_id: str) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {IDENTITY_COLUMNS} FROM identities WHERE id = %s AND project_id = %s",
                (identity_id, project_id),
            )
            row = cursor.fetchone()
            if not row:
                return None
            aliases = _aliases_for(cursor, [str(row[0])])

        return _row_to_identity(row, aliases[str(row[0])])

    def find_by_alias(
        self, project_id: str, platform_id: str, provider_user_id: str
    ) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT identity_id FROM identity_aliases
                WHERE project_id = %s AND platform_id = %s AND provider_user_id = %s
                """,
                (project_id, platform_id, provider_user_id),
            )
            row = cursor.fetchone()

        if not row:
            return None
        return self.get_identity(project_id, str(row[0]))

    def update_identity(
        self, project_id: str, identity_id: str, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        values = {
            column: Jsonb(value) if column == "metadata" and value is not None else value
            for column, value in changes.items()
        }
        assignments = "".join(f"{column} = %s, " for column in values)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                UPDATE identities SET {assignments}updated_at = NOW()
                WHERE id = %s AND project_id = %s
                RETURNING {IDENTITY_COLUMNS}
                """,
                (*values.values(), identity_id, project_id),
            )
            row = cursor.fetchone()
            if not row:
                return None
            aliases = _aliases_for(cursor, [str(row[0])])
            conn.commit()

        return _row_to_identity(row, aliases[str(row[0])])

    def delete_identity(self, project_id: str, identity_id: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM identities WHERE id = %s AND project_id = %s",
                (identity_id, project_id),
            )
            deleted = cursor.rowcount > 0
            conn.commit()
        return deleted

    def add_alias(self, project_id: str, identity_id: str, alias: dict[str, Any]) -> dict[str, Any]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO identity_aliases
                    (id, identity_id, project_id, platform_id, platform,
                     provider_user_id, provider_user_display, link_method)
                VALUES (%s, %s, %s, %s, %s, %s, %s, 'manual')
                RETURNING {ALIAS_COLUMNS}
                """,
                (
                    str(uuid.uuid4()),
                    identity_id,
                    project_id,
                    alias["platform_id"],
                    alias["platform"],
                    alias["provider_user_id"],
                    alias.get("provider_user_display"),
                ),
            )
            row = cursor.fetchone()
            conn.commit()

        return _row_to_alias(row)

    def delete_alias(self, identity_id: str, alias_id: str) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM identity_aliases WHERE id = %s AND identity_id = %s",
                (alias_id, identity_id),
            )
            conn.commit()
