"""
Messages module protocols.

Defines the storage interface of the message query path so the service can be
tested against in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from gatekit_core.domain.messaging import MessageQuery, ReactionEvent, ReceivedMessage, SentMessage


@runtime_checkable
class MessageRepository(Protocol):
    """Protocol for received/sent message storage."""

    def list_received(
        self, project_id: str, query: MessageQuery
    ) -> tuple[list[ReceivedMessage], int]:
        """Return one page of received messages and the total match count."""
        ...

    def get_received(self, project_id: str, message_id: str) -> ReceivedMessage | None:
        """Return a received message of the project, or None."""
        ...

    def list_reactions(
        self, project_id: str, message_refs: list[tuple[str, str]]
    ) -> list[ReactionEvent]:
        """Return every reaction event for the (platform_id, provider_message_id)
        refs, newest first."""
        ...

    def list_received_by_users(
        self, project_id: str, user_keys: list[tuple[str, str]]
    ) -> list[ReceivedMessage]:
        """Return every message sent by the (platform_id, provider_user_id)
        users, newest first."""
        ...

    def list_reactions_by_users(
        self, project_id: str, user_keys: list[tuple[str, str]]
    ) -> list[ReactionEvent]:
        """Return every reaction event by the users, newest first."""
        ...

    def get_stats(self, project_id: str) -> dict[str, Any]:
        """Return aggregate received/sent statistics."""
        ...

    def list_sent(
        self,
        project_id: str,
        platform: str | None,
        status: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[SentMessage], int]:
        """Return one page of sent messages and the total match count."""
        ...

    def delete_received_before(self, project_id: str | None, cutoff: datetime) -> int:
        """Delete received messages older than cutoff; all projects when None."""
        ...
