"""
MessageService: the message query path.

Lists and fetches received messages with sender identities and, on request,
current reaction state derived from the reaction log. Every operation
re-validates project access before touching the repository.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from app.messages.protocols import MessageRepository
from gatekit_core.auth.project_access import validate_project_access
from gatekit_core.domain.auth import AuthContext
from gatekit_core.domain.messaging import MessageQuery, Pagination, ReceivedMessage
from gatekit_core.messaging.identity_resolver import IdentityResolver
from gatekit_core.messaging.reactions import (
    group_reactions,
    reaction_identity_keys,
    reduce_reaction_events,
)
from gatekit_core.runtime.errors import BadRequestError, NotFoundError


class MessageService:
    """Service for received and sent message queries."""

    def __init__(self, repository: MessageRepository, identity_resolver: IdentityResolver):
        self.repository = repository
        self.identity_resolver = identity_resolver

    def _attach_identities_and_reactions(
        self,
        project_id: str,
        messages: list[ReceivedMessage],
        include_reactions: bool,
    ) -> None:
        """Resolve sender identities and, optionally, reactions in place.

        Senders and reacting users share one batched identity lookup.
        """
        active = []
        if include_reactions:
            events = self.repository.list_reactions(
                project_id,
                list(dict.fromkeys((m.platform_id, m.provider_message_id) for m in messages)),
            )
            active = reduce_reaction_events(events)

        sender_keys = [(m.platform_id, m.provider_user_id) for m in messages]
        identities = self.identity_resolver.batch_resolve(
            project_id, sender_keys + reaction_identity_keys(active)
        )

        grouped = group_reactions(active, identities) if include_reactions else {}
        for message in messages:
            message.identity = identities.get((message.platform_id, message.provider_user_id))
            if include_reactions:
                message.reactions = grouped.get(message.provider_message_id, {})

    def list_messages(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        query: MessageQuery,
    ) -> dict[str, Any]:
        """List received messages with pagination.

        Raises:
            BadRequestError: If paging parameters are out of range.
        """
        validate_project_access(auth_context, project_id, "message retrieval")

        if not 1 <= query.limit <= 100:
            raise BadRequestError("limit must be between 1 and 100")
        if query.offset < 0:
            raise BadRequestError("offset must not be negative")
        if query.order not in ("asc", "desc"):
            raise BadRequestError("order must be 'asc' or 'desc'")

        messages, total = self.repository.list_received(project_id, query)
        if messages:
            self._attach_identities_and_reactions(project_id, messages, query.reactions)

        return {
            "messages": [m.to_dict(include_raw=query.raw) for m in messages],
            "pagination": Pagination(total=total, limit=query.limit, offset=query.offset).to_dict(),
        }

    def get_message(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        message_id: str,
    ) -> dict[str, Any]:
        """Fetch a single received message; reactions are always resolved.

        Raises:
            NotFoundError: If the message does not exist in this project.
        """
        validate_project_access(auth_context, project_id, "message retrieval")

        message = self.repository.get_received(project_id, message_id)
        if message is None:
            raise NotFoundError("Message not found")

        self._attach_identities_and_reactions(project_id, [message], include_reactions=True)
        return message.to_dict(include_raw=True)

    def get_stats(self, auth_context: AuthContext | None, project_id: str) -> dict[str, Any]:
        validate_project_access(auth_context, project_id, "message statistics")
        return self.repository.get_stats(project_id)

    def list_sent(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        platform: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """List sent messages, resolving identities of user targets."""
        validate_project_access(auth_context, project_id, "sent message retrieval")

        messages, total = self.repository.list_sent(project_id, platform, status, limit, offset)

        user_targets = [
            (m.platform_id, m.target_user_id)
            for m in messages
            if m.target_type == "user" and m.target_user_id
        ]
        identities = self.identity_resolver.batch_resolve(project_id, user_targets)
        for message in messages:
            if message.target_type == "user" and message.target_user_id:
                message.target_identity = identities.get(
                    (message.platform_id, message.target_user_id)
                )

        return {
            "messages": [m.to_dict() for m in messages],
            "pagination": Pagination(total=total, limit=limit, offset=offset).to_dict(),
        }

    def cleanup(
        self,
        auth_context: AuthContext | None,
        project_id: str,
        days_before: int,
    ) -> dict[str, Any]:
        """Delete received messages older than `days_before` days."""
        validate_project_access(auth_context, project_id, "message cleanup")

        if days_before < 1:
            raise BadRequestError("days_before must be at least 1")

        cutoff = datetime.now(timezone.utc) - timedelta(days=days_before)
        deleted = self.repository.delete_received_before(project_id, cutoff)
        return {
            "message": f"Deleted {deleted} messages older than {days_before} days",
            "deleted_count": deleted,
        }
