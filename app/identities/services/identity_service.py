"""
IdentityService: cross-platform identities of a project.

An identity groups platform users (aliases) that are the same person. A
(platform_id, provider_user_id) pair can be linked to at most one identity.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from app.identities.protocols import IdentityRepository
from app.messages.protocols import MessageRepository
from gatekit_core.auth.project_access import ProjectDirectory, get_project_with_access
from gatekit_core.domain.auth import AuthContext
from gatekit_core.messaging.reactions import reduce_reaction_events
from gatekit_core.runtime.errors import BadRequestError, ConflictError, NotFoundError


class IdentityService:
    """Service for identity and alias management."""

    def __init__(
        self,
        repository: IdentityRepository,
        directory: ProjectDirectory,
        messages: MessageRepository | None = None,
    ):
        self.repository = repository
        self.directory = directory
        self.messages = messages

    def _get_identity(self, project_id: str, identity_id: str) -> dict[str, Any]:
        identity = self.repository.get_identity(project_id, identity_id)
        if identity is None:
            raise NotFoundError(f"Identity {identity_id} not found in project {project_id}")
        return identity

    def create(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        aliases: list[dict[str, Any]],
        display_name: str | None = None,
        email: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create an identity with its initial aliases.

        Raises:
            BadRequestError: If an alias names a platform outside the project
                or the same platform user is listed twice.
            ConflictError: If any platform user is already linked to an identity.
        """
        project = get_project_with_access(self.directory, project_id, auth_context, "create identities")

        keys = [(a["platform_id"], a["provider_user_id"]) for a in aliases]
        if len(set(keys)) != len(keys):
            raise BadRequestError("Duplicate platform users in aliases")

        platform_ids = list(dict.fromkeys(a["platform_id"] for a in aliases))
        platform_types = self.repository.get_platform_types(project.id, platform_ids)
        if len(platform_types) != len(platform_ids):
            raise BadRequestError("One or more platform IDs do not belong to this project")

        existing = self.repository.find_aliases_by_users(keys)
        if existing:
            duplicates = ", ".join(
                f"{a['platform']} user {a['provider_user_id']} "
                f"(already linked to identity {a['identity_id']})"
                for a in existing
            )
            raise ConflictError(
                f"The following platform users are already linked to identities: {duplicates}"
            )

        identity = self.repository.create_identity(
            project.id,
            display_name,
            email,
            metadata,
            [{**a, "platform": platform_types[a["platform_id"]]} for a in aliases],
        )
        logger.info(
            f"Created identity {identity['id']} with {len(identity['aliases'])} aliases "
            f"for project {project.id}"
        )
        return identity

    def list_identities(self, auth_context: AuthContext | None, project_id: str) -> list[dict[str, Any]]:
        project = get_project_with_access(self.directory, project_id, auth_context, "list identities")
        return self.repository.list_identities(project.id)

    def get(self, auth_context: AuthContext | None, project_id: str, identity_id: str) -> dict[str, Any]:
        project = get_project_with_access(self.directory, project_id, auth_context, "view identity")
        return self._get_identity(project.id, identity_id)

    def lookup(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        platform_id: str,
        provider_user_id: str,
    ) -> dict[str, Any]:
        """Find the identity a platform user is linked to.

        Raises:
            NotFoundError: If the platform user has no identity in this project.
        """
        project = get_project_with_access(self.directory, project_id, auth_context, "lookup identity")

        identity = self.repository.find_by_alias(project.id, platform_id, provider_user_id)
        if identity is None:
            raise NotFoundError(
                f"No identity found for platform user {provider_user_id} on platform {platform_id}"
            )
        return identity

    def update(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        identity_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any]:
        """Update display name, email or metadata."""
        project = get_project_with_access(self.directory, project_id, auth_context, "update identity")

        allowed = {k: v for k, v in changes.items() if k in ("display_name", "email", "metadata")}
        identity = self.repository.update_identity(project.id, identity_id, allowed)
        if identity is None:
            raise NotFoundError(f"Identity {identity_id} not found in project {project_id}")

        logger.info(f"Updated identity {identity_id} in project {project.id}")
        return identity

    def delete(self, auth_context: AuthContext | None, project_id: str, identity_id: str) -> dict[str, Any]:
        project = get_project_with_access(self.directory, project_id, auth_context, "delete identity")

        if not self.repository.delete_identity(project.id, identity_id):
            raise NotFoundError(f"Identity {identity_id} not found in project {project_id}")

        logger.info(f"Deleted identity {identity_id} from project {project.id}")
        return {"success": True, "message": "Identity deleted successfully"}

    def add_alias(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        identity_id: str,
        platform_id: str,
        provider_user_id: str,
        provider_user_display: str | None = None,
    ) -> dict[str, Any]:
        """Link another platform user to an identity.

        Raises:
            NotFoundError: If the identity is not in this project.
            BadRequestError: If the platform is not configured in this project.
            ConflictError: If the platform user is already linked.
        """
        project = get_project_with_access(self.directory, project_id, auth_context, "add identity alias")
        self._get_identity(project.id, identity_id)

        platform_types = self.repository.get_platform_types(project.id, [platform_id])
        if platform_id not in platform_types:
            raise BadRequestError(
                f"Platform {platform_id} does not belong to project {project_id}"
            )

        existing = self.repository.find_aliases_by_users([(platform_id, provider_user_id)])
        if existing:
            raise ConflictError(
                f"Platform user {provider_user_id} on platform {platform_types[platform_id]} "
                f"is already linked to identity {existing[0]['identity_id']}"
            )

        alias = self.repository.add_alias(
            project.id,
            identity_id,
            {
                "platform_id": platform_id,
                "platform": platform_types[platform_id],
                "provider_user_id": provider_user_id,
                "provider_user_display": provider_user_display,
            },
        )
        logger.info(f"Added alias {alias['id']} to identity {identity_id} in project {project.id}")
        return alias

    def remove_alias(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        identity_id: str,
        alias_id: str,
    ) -> dict[str, Any]:
        """Unlink a platform user from an identity.

        Raises:
            NotFoundError: If the identity or alias is not found.
            BadRequestError: If it is the identity's last alias.
        """
        project = get_project_with_access(
            self.directory, project_id, auth_context, "remove identity alias"
        )
        identity = self._get_identity(project.id, identity_id)

        if not any(a["id"] == alias_id for a in identity["aliases"]):
            raise NotFoundError(f"Alias {alias_id} not found for identity {identity_id}")
        if len(identity["aliases"]) == 1:
            raise BadRequestError(
                "Cannot remove the last alias from an identity. Delete the identity instead."
            )

        self.repository.delete_alias(identity_id, alias_id)
        logger.info(f"Removed alias {alias_id} from identity {identity_id}")
        return {"success": True, "message": "Alias removed successfully"}

    def _alias_keys(self, project_id: str, identity_id: str) -> list[tuple[str, str]]:
        identity = self._get_identity(project_id, identity_id)
        return [(a["platform_id"], a["provider_user_id"]) for a in identity["aliases"]]

    def list_messages(
        self, auth_context: AuthContext | None, project_id: str, identity_id: str
    ) -> list[dict[str, Any]]:
        """Messages received from any platform user linked to the identity, newest first."""
        project = get_project_with_access(
            self.directory, project_id, auth_context, "view identity messages"
        )
        keys = self._alias_keys(project.id, identity_id)
        messages = self.messages.list_received_by_users(project.id, keys)
        return [m.to_dict() for m in messages]

    def list_reactions(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        identity_id: str,
        active_only: bool = False,
    ) -> list[dict[str, Any]]:
        """Reaction events from the identity's aliases, newest first.

        With `active_only`, the log is reduced to the reactions still in place.
        """
        project = get_project_with_access(
            self.directory, project_id, auth_context, "view identity reactions"
        )
        keys = self._alias_keys(project.id, identity_id)
        events = self.messages.list_reactions_by_users(project.id, keys)
        if active_only:
            events = reduce_reaction_events(events)
        return [e.to_dict() for e in events]
