"""
Protocol definitions for the identities module.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IdentityRepository(Protocol):
    """Storage for identities and their platform aliases."""

    def get_platform_types(self, project_id: str, platform_ids: list[str]) -> dict[str, str]:
        """Map each platform id configured in the project to its platform type."""
        ...

    def find_aliases_by_users(self, keys: list[tuple[str, str]]) -> list[dict[str, Any]]:
        """Aliases already linked for any (platform_id, provider_user_id) in `keys`."""
        ...

    def create_identity(
        self,
        project_id: str,
        display_name: str | None,
        email: str | None,
        metadata: dict[str, Any] | None,
        aliases: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Insert an identity and its aliases together."""
        ...

    def list_identities(self, project_id: str) -> list[dict[str, Any]]:
        ...

    def get_identity(self, project_id: str, identity_id: str) -> dict[str, Any] | None:
        ...

    def find_by_alias(
        self, project_id: str, platform_id: str, provider_user_id: str
    ) -> dict[str, Any] | None:
        ...

    def update_identity(
        self, project_id: str, identity_id: str, changes: dict[str, Any]
    ) -> dict[str, Any] | None:
        ...

    def delete_identity(self, project_id: str, identity_id: str) -> bool:
        ...

    def add_alias(self, project_id: str, identity_id: str, alias: dict[str, Any]) -> dict[str, Any]:
        ...

    def delete_alias(self, identity_id: str, alias_id: str) -> None:
        ...
