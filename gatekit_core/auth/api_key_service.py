"""
API Key service for authentication.

Handles API key generation, validation, and lifecycle management.
Keys are stored as SHA-256 hashes; only a 12-character prefix and a 4-character
suffix are kept in clear for display. Keys are never deleted, only revoked.
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import psycopg
from loguru import logger

from gatekit_core.auth.project_access import validate_project_access
from gatekit_core.auth.scopes import validate_scopes
from gatekit_core.config import settings
from gatekit_core.domain.auth import AuthContext, ProjectRef
from gatekit_core.runtime.errors import NotFoundError

ENVIRONMENT_PREFIXES = {
    "production": "prod",
    "staging": "stg",
    "development": "dev",
    "custom": "custom",
}


def _as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps (TIMESTAMP WITHOUT TIME ZONE columns) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_key_active(
    revoked_at: datetime | None,
    expires_at: datetime | None,
    now: datetime | None = None,
) -> bool:
    """Return True if a key is neither revoked nor expired at `now`.

    A revocation time in the future (scheduled by a roll) keeps the key valid
    until that moment.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    revoked_at = _as_utc(revoked_at)
    expires_at = _as_utc(expires_at)
    if revoked_at is not None and revoked_at <= now:
        return False
    if expires_at is not None and expires_at <= now:
        return False
    return True


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ApiKeyService:
    """Service for API key validation and management."""

    KEY_PREFIX = "gk_"
    DISPLAY_PREFIX_LEN = 12
    DISPLAY_SUFFIX_LEN = 4

    def __init__(self, dsn: str | None = None):
        """Initialize the API key service.

        Args:
            dsn: PostgreSQL connection string. Defaults to settings.POSTGRES_DSN.
        """
        self.dsn = dsn or settings.POSTGRES_DSN

    def _hash_key(self, raw_key: str) -> str:
        """Hash an API key using SHA-256.

        Args:
            raw_key: The raw API key string.

        Returns:
            Hexadecimal hash of the key.
        """
        return hashlib.sha256(raw_key.encode()).hexdigest()

    def generate_key(self, environment: str = "development") -> tuple[str, str]:
        """Generate a new API key for a project environment.

        Returns:
            Tuple of (raw_key, key_hash).
        """
        env = ENVIRONMENT_PREFIXES.get(environment, "custom")
        raw_key = f"{self.KEY_PREFIX}{env}_{secrets.token_urlsafe(32)}"
        return raw_key, self._hash_key(raw_key)

    def key_prefix(self, raw_key: str) -> str:
        return raw_key[: self.DISPLAY_PREFIX_LEN]

    def key_suffix(self, raw_key: str) -> str:
        return raw_key[-self.DISPLAY_SUFFIX_LEN :]

    @staticmethod
    def mask_key(prefix: str, suffix: str) -> str:
        """Render a stored key for display, e.g. ``gk_dev_AbCdE...wXyZ``."""
        return f"{prefix}...{suffix}"

    def validate_key(self, raw_key: str) -> dict | None:
        """Validate an API key and return its record if valid.

        Args:
            raw_key: The raw API key from the request header.

        Returns:
            Dict with key_id, name, scopes and project (ProjectRef), or None if
            the key is unknown, revoked or expired.
        """
        key_hash = self._hash_key(raw_key)

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT k.id, k.name, k.expires_at, k.revoked_at,
                           p.id, p.name, p.environment, p.owner_id,
                           COALESCE(
                               array_agg(s.scope ORDER BY s.scope)
                               FILTER (WHERE s.scope IS NOT NULL),
                               '{}'
                           )
                    FROM api_keys k
                    JOIN projects p ON p.id = k.project_id
                    LEFT JOIN api_key_scopes s ON s.api_key_id = k.id
                    WHERE k.key_hash = %s
                    GROUP BY k.id, p.id
                    """,
                    (key_hash,),
                )
                row = cur.fetchone()

        if not row:
            return None

        (
            key_id,
            name,
            expires_at,
            revoked_at,
            project_id,
            project_name,
            environment,
            owner_id,
            scopes,
        ) = row

        if not is_key_active(revoked_at, expires_at):
            return None

        self._touch_last_used(str(key_id))

        return {
            "key_id": str(key_id),
            "name": name,
            "scopes": list(scopes) if scopes else [],
            "project": ProjectRef(
                id=project_id,
                name=project_name,
                environment=environment,
                owner_id=str(owner_id) if owner_id else None,
            ),
        }

    def _touch_last_used(self, key_id: str) -> None:
        """Record key usage. Failures are logged and never fail authentication."""
        try:
            with psycopg.connect(self.dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "UPDATE api_keys SET last_used_at = NOW() WHERE id = %s",
                        (key_id,),
                    )
        except psycopg.Error as e:
            logger.warning(f"Failed to record usage for API key {key_id}: {e}")

    def _get_project(self, cur, project_id: str) -> ProjectRef:
        cur.execute(
            "SELECT id, name, environment, owner_id FROM projects WHERE id = %s",
            (project_id,),
        )
        row = cur.fetchone()
        if not row:
            raise NotFoundError(f"Project '{project_id}' not found")
        return ProjectRef(
            id=row[0], name=row[1], environment=row[2], owner_id=str(row[3]) if row[3] else None
        )

    def _insert_key(
        self,
        cur,
        project: ProjectRef,
        name: str,
        scopes: list[str],
        expires_at: datetime | None,
        created_by: str | None,
    ) -> dict[str, Any]:
        raw_key, key_hash = self.generate_key(project.environment)
        key_id = str(uuid.uuid4())
        prefix = self.key_prefix(raw_key)

        cur.execute(
            """
            INSERT INTO api_keys
                (id, project_id, key_hash, key_prefix, key_suffix, name, expires_at, created_by)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING created_at
            """,
            (
                key_id,
                project.id,
                key_hash,
                prefix,
                self.key_suffix(raw_key),
                name,
                expires_at,
                created_by,
            ),
        )
        created_at = cur.fetchone()[0]
        cur.executemany(
            "INSERT INTO api_key_scopes (api_key_id, scope) VALUES (%s, %s)",
            [(key_id, scope) for scope in scopes],
        )

        return {
            "id": key_id,
            "key": raw_key,
            "name": name,
            "prefix": prefix,
            "scopes": list(scopes),
            "expires_at": _iso(expires_at),
            "created_at": _iso(created_at),
        }

    def create_key(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        name: str,
        scopes: list[str],
        expires_in_days: int | None = None,
        created_by: str | None = None,
    ) -> dict[str, Any]:
        """Create a new API key for a project.

        The raw key is only returned here; it cannot be recovered later.

        Raises:
            BadRequestError: If scopes are empty or unknown.
            NotFoundError: If the project does not exist.
        """
        validate_project_access(auth_context, project_id, "API key creation")
        scopes = validate_scopes(scopes)

        expires_at = None
        if expires_in_days:
            expires_at = datetime.now(timezone.utc) + timedelta(days=expires_in_days)

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                project = self._get_project(cur, project_id)
                created = self._insert_key(cur, project, name, scopes, expires_at, created_by)

        logger.info(f"API key {created['id']} created for project {project_id}")
        return created

    def list_keys(self, auth_context: AuthContext | None, project_id: str) -> list[dict]:
        """List unrevoked API keys for a project (masked, without hashes)."""
        validate_project_access(auth_context, project_id, "API key listing")

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT k.id, k.name, k.key_prefix, k.key_suffix,
                           COALESCE(
                               array_agg(s.scope ORDER BY s.scope)
                               FILTER (WHERE s.scope IS NOT NULL),
                               '{}'
                           ),
                           k.last_used_at, k.expires_at, k.created_at
                    FROM api_keys k
                    LEFT JOIN api_key_scopes s ON s.api_key_id = k.id
                    WHERE k.project_id = %s AND k.revoked_at IS NULL
                    GROUP BY k.id
                    ORDER BY k.created_at DESC
                    """,
                    (project_id,),
                )
                rows = cur.fetchall()

        return [
            {
                "id": str(row[0]),
                "name": row[1],
                "masked_key": self.mask_key(row[2], row[3]),
                "scopes": list(row[4]) if row[4] else [],
                "last_used_at": _iso(row[5]),
                "expires_at": _iso(row[6]),
                "created_at": _iso(row[7]),
            }
            for row in rows
        ]

    def revoke_key(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        key_id: str,
    ) -> dict[str, str]:
        """Revoke an API key immediately.

        Revoking an already-revoked key is not an error.

        Raises:
            NotFoundError: If the key does not exist in this project.
        """
        validate_project_access(auth_context, project_id, "API key revocation")

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT revoked_at FROM api_keys WHERE id = %s AND project_id = %s",
                    (key_id, project_id),
                )
                row = cur.fetchone()
                if not row:
                    raise NotFoundError("API key not found")

                if row[0] is not None:
                    return {"message": "API key already revoked"}

                cur.execute(
                    "UPDATE api_keys SET revoked_at = NOW() WHERE id = %s",
                    (key_id,),
                )

        logger.info(f"API key {key_id} revoked for project {project_id}")
        return {"message": "API key revoked successfully"}

    def roll_key(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        key_id: str,
        created_by: str | None = None,
    ) -> dict[str, Any]:
        """Replace a key with a new one, keeping the old key valid for a grace period.

        The old key's revocation and the new key's creation commit in one
        transaction. The new key copies the old key's name, expiry and scopes.

        Raises:
            NotFoundError: If no active key with this id exists in the project.
        """
        validate_project_access(auth_context, project_id, "API key rolling")

        old_key_revoked_at = datetime.now(timezone.utc) + timedelta(
            hours=settings.API_KEY_ROLL_GRACE_HOURS
        )

        with psycopg.connect(self.dsn) as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    project = self._get_project(cur, project_id)
                    cur.execute(
                        """
                        SELECT k.name, k.expires_at,
                               COALESCE(
                                   array_agg(s.scope ORDER BY s.scope)
                                   FILTER (WHERE s.scope IS NOT NULL),
                                   '{}'
                               )
                        FROM api_keys k
                        LEFT JOIN api_key_scopes s ON s.api_key_id = k.id
                        WHERE k.id = %s AND k.project_id = %s AND k.revoked_at IS NULL
                        GROUP BY k.id
                        """,
                        (key_id, project_id),
                    )
                    row = cur.fetchone()
                    if not row:
                        raise NotFoundError("Active API key not found")

                    name, expires_at, scopes = row
                    cur.execute(
                        "UPDATE api_keys SET revoked_at = %s WHERE id = %s",
                        (old_key_revoked_at, key_id),
                    )
                    created = self._insert_key(
                        cur, project, name, list(scopes or []), expires_at, created_by
                    )

        logger.info(
            f"API key {key_id} rolled to {created['id']} for project {project_id}; "
            f"old key revoked at {old_key_revoked_at.isoformat()}"
        )
        created["old_key_id"] = key_id
        created["old_key_revoked_at"] = old_key_revoked_at.isoformat()
        return created
