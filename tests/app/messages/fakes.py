"""
Fake implementations of message protocols for testing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from app.messages.protocols import MessageRepository
from gatekit_core.domain.messaging import MessageQuery, ReactionEvent, ReceivedMessage, SentMessage


class FakeMessageRepository(MessageRepository):
    def __init__(
        self,
        received: list[ReceivedMessage] | None = None,
        reactions: list[ReactionEvent] | None = None,
        sent: list[SentMessage] | None = None,
        total: int | None = None,
    ):
        self.received = received or []
        self.reactions = reactions or []
        self.sent = sent or []
        self.total = total
        self.reaction_calls: list[list[tuple[str, str]]] = []
        self.delete_calls: list[tuple[str | None, datetime]] = []

    def list_received(self, project_id: str, query: MessageQuery) -> tuple[list[ReceivedMessage], int]:
        matching = [m for m in self.received if m.project_id == project_id]
        page = matching[query.offset : query.offset + query.limit]
        return page, self.total if self.total is not None else len(matching)

    def get_received(self, project_id: str, message_id: str) -> ReceivedMessage | None:
        return next(
            (m for m in self.received if m.id == message_id and m.project_id == project_id), None
        )

    def list_reactions(self, project_id: str, message_refs: list[tuple[str, str]]) -> list[ReactionEvent]:
        self.reaction_calls.append(list(message_refs))
        refs = set(message_refs)
        return [r for r in self.reactions if (r.platform_id, r.provider_message_id) in refs]

    def list_received_by_users(
        self, project_id: str, user_keys: list[tuple[str, str]]
    ) -> list[ReceivedMessage]:
        keys = set(user_keys)
        matching = [
            m for m in self.received
            if m.project_id == project_id and (m.platform_id, m.provider_user_id) in keys
        ]
        return sorted(matching, key=lambda m: m.received_at, reverse=True)

    def list_reactions_by_users(
        self, project_id: str, user_keys: list[tuple[str, str]]
    ) -> list[ReactionEvent]:
        keys = set(user_keys)
        matching = [r for r in self.reactions if (r.platform_id, r.provider_user_id) in keys]
        return sorted(matching, key=lambda r: r.received_at, reverse=True)

    def get_stats(self, project_id: str) -> dict[str, Any]:
        return {
            "received": {
                "total_messages": len(self.received),
                "recent_messages": 0,
                "unique_users": len({m.provider_user_id for m in self.received}),
                "unique_chats": len({m.provider_chat_id for m in self.received}),
                "by_platform": [],
            },
            "sent": {"total_messages": len(self.sent), "by_platform_and_status": []},
        }

    def list_sent(
        self, project_id: str, platform: str | None, status: str | None, limit: int, offset: int
    ) -> tuple[list[SentMessage], int]:
        matching = [
            m for m in self.sent
            if (platform is None or m.platform == platform) and (status is None or m.status == status)
        ]
        return matching[offset : offset + limit], len(matching)

    def delete_received_before(self, project_id: str | None, cutoff: datetime) -> int:
        self.delete_calls.append((project_id, cutoff))
        before = len(self.received)
        self.received = [
            m for m in self.received
            if not ((project_id is None or m.project_id == project_id) and m.received_at < cutoff)
        ]
        return before - len(self.received)
