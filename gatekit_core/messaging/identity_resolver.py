"""
Batched identity resolution.

Maps platform users, keyed by (platform_id, provider_user_id), to the project's
cross-platform identity records with a single store query per batch.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import psycopg
from loguru import logger

from gatekit_core.config import settings
from gatekit_core.domain.messaging import IdentityInfo

IdentityKey = tuple[str, str]  # (platform_id, provider_user_id)


@dataclass(frozen=True)
class AliasMatch:
    """An alias row joined with its identity."""

    platform_id: str
    provider_user_id: str
    project_id: str
    identity: IdentityInfo


@runtime_checkable
class IdentityAliasStore(Protocol):
    """Alias lookups used by the identity resolver."""

    def find_aliases(self, project_id: str, keys: list[IdentityKey]) -> list[AliasMatch]:
        """Return aliases matching any of `keys`, in one round trip."""
        ...


class PostgresIdentityAliasStore:
    """IdentityAliasStore over the identity_aliases and identities tables."""

    def __init__(self, dsn: str | None = None):
        self.dsn = dsn or settings.POSTGRES_DSN

    def find_aliases(self, project_id: str, keys: list[IdentityKey]) -> list[AliasMatch]:
        if not keys:
            return []

        platform_ids = [k[0] for k in keys]
        user_ids = [k[1] for k in keys]

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT a.platform_id, a.provider_user_id, a.project_id,
                           i.id, i.display_name, i.email
                    FROM identity_aliases a
                    JOIN identities i ON i.id = a.identity_id
                    WHERE a.project_id = %s
                      AND (a.platform_id, a.provider_user_id) IN (
                          SELECT * FROM unnest(%s::text[], %s::text[])
                      )
                    """,
                    (project_id, platform_ids, user_ids),
                )
                rows = cur.fetchall()

        return [
            AliasMatch(
                platform_id=row[0],
                provider_user_id=row[1],
                project_id=row[2],
                identity=IdentityInfo(id=str(row[3]), display_name=row[4], email=row[5]),
            )
            for row in rows
        ]


class IdentityResolver:
    """Resolves platform users to identities of the requesting project."""

    def __init__(self, store: IdentityAliasStore | None = None):
        self.store = store or PostgresIdentityAliasStore()

    def batch_resolve(
        self,
        project_id: str,
        keys: Iterable[IdentityKey],
    ) -> dict[IdentityKey, IdentityInfo]:
        """Resolve every distinct key with one store query.

        Aliases belonging to another project are discarded even if the store
        returns them. Unresolved keys are simply absent from the result.
        """
        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}

        resolved: dict[IdentityKey, IdentityInfo] = {}
        for match in self.store.find_aliases(project_id, unique):
            if match.project_id != project_id:
                logger.warning(
                    f"Discarding identity alias from project {match.project_id} "
                    f"while resolving for project {project_id}"
                )
                continue
            resolved[(match.platform_id, match.provider_user_id)] = match.identity
        return resolved

    def resolve_one(self, project_id: str, platform_id: str, provider_user_id: str) -> IdentityInfo | None:
        return self.batch_resolve(project_id, [(platform_id, provider_user_id)]).get(
            (platform_id, provider_user_id)
        )
