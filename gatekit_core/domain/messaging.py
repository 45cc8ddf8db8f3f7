"""
Messaging domain models.

Received messages and reaction events are immutable records written by the
platform webhooks. Current reaction state is never stored; it is derived from the
append-only reaction log at read time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class ReactionType(str, Enum):
    """Kind of reaction event."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class ReactionEvent:
    """One entry of the append-only reaction log."""

    platform_id: str
    provider_message_id: str
    provider_user_id: str
    emoji: str
    reaction_type: ReactionType
    received_at: datetime
    user_display: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform_id": self.platform_id,
            "provider_message_id": self.provider_message_id,
            "provider_user_id": self.provider_user_id,
            "user_display": self.user_display,
            "emoji": self.emoji,
            "reaction_type": self.reaction_type.value,
            "received_at": self.received_at.isoformat(),
        }


@dataclass(frozen=True)
class IdentityInfo:
    """Cross-platform identity attached to a platform user."""

    id: str
    display_name: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "display_name": self.display_name, "email": self.email}


@dataclass(frozen=True)
class ReactionUser:
    """A user currently reacting with a given emoji."""

    id: str
    name: str
    identity: IdentityInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "identity": self.identity.to_dict() if self.identity else None,
        }


@dataclass
class ReceivedMessage:
    """Inbound platform message."""

    id: str
    project_id: str
    platform: str
    platform_id: str
    provider_message_id: str
    provider_chat_id: str
    provider_user_id: str
    received_at: datetime
    user_display: str | None = None
    message_text: str | None = None
    message_type: str = "text"
    raw_data: dict[str, Any] | None = None
    identity: IdentityInfo | None = None
    reactions: dict[str, list[ReactionUser]] | None = None

    def to_dict(self, include_raw: bool = False) -> dict[str, Any]:
        """Serialize for API responses.

        `reactions` is omitted when reactions were not requested, and is an
        empty dict when they were requested but none are active.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "platform": self.platform,
            "platform_id": self.platform_id,
            "provider_message_id": self.provider_message_id,
            "provider_chat_id": self.provider_chat_id,
            "provider_user_id": self.provider_user_id,
            "user_display": self.user_display,
            "message_text": self.message_text,
            "message_type": self.message_type,
            "received_at": self.received_at.isoformat(),
            "identity": self.identity.to_dict() if self.identity else None,
        }
        if include_raw:
            data["raw_data"] = self.raw_data
        if self.reactions is not None:
            data["reactions"] = {
                emoji: [user.to_dict() for user in users]
                for emoji, users in self.reactions.items()
            }
        return data


@dataclass
class SentMessage:
    """Outbound message record written by the delivery pipeline."""

    id: str
    platform_id: str
    platform: str
    target_chat_id: str
    target_type: str
    status: str
    created_at: datetime
    job_id: str | None = None
    provider_message_id: str | None = None
    target_user_id: str | None = None
    message_text: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    target_identity: IdentityInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "platform_id": self.platform_id,
            "platform": self.platform,
            "job_id": self.job_id,
            "provider_message_id": self.provider_message_id,
            "target_chat_id": self.target_chat_id,
            "target_user_id": self.target_user_id,
            "target_type": self.target_type,
            "message_text": self.message_text,
            "status": self.status,
            "error_message": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat(),
            "target_identity": self.target_identity.to_dict() if self.target_identity else None,
        }


@dataclass
class Pagination:
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "has_more": self.has_more,
        }


@dataclass
class MessageQuery:
    """Filters and paging for received message listing."""

    platform: str | None = None
    platform_id: str | None = None
    chat_id: str | None = None
    user_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = 50
    offset: int = 0
    order: str = "desc"
    raw: bool = False
    reactions: bool = False
