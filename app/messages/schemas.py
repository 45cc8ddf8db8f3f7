"""
Pydantic schemas for the messages module.

Response models for received/sent message queries and statistics.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class IdentityResponse(BaseModel):
    """Cross-platform identity attached to a platform user."""

    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None


class ReactionUserResponse(BaseModel):
    """A user currently reacting with an emoji."""

    id: str
    name: str
    identity: Optional[IdentityResponse] = None


class ReceivedMessageResponse(BaseModel):
    """Received message. `raw_data` and `reactions` are present only when requested."""

    id: str
    platform: str
    platform_id: str
    provider_message_id: str
    provider_chat_id: str
    provider_user_id: str
    user_display: Optional[str] = None
    message_text: Optional[str] = None
    message_type: str
    received_at: str
    identity: Optional[IdentityResponse] = None
    raw_data: Optional[dict[str, Any]] = None
    reactions: Optional[dict[str, list[ReactionUserResponse]]] = None


class PaginationResponse(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class MessageListResponse(BaseModel):
    """Paginated received messages."""

    messages: list[ReceivedMessageResponse]
    pagination: PaginationResponse


class SentMessageResponse(BaseModel):
    """Outbound message record."""

    id: str
    platform_id: str
    platform: str
    job_id: Optional[str] = None
    provider_message_id: Optional[str] = None
    target_chat_id: str
    target_user_id: Optional[str] = None
    target_type: str
    message_text: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    sent_at: Optional[str] = None
    created_at: str
    target_identity: Optional[IdentityResponse] = None


class SentMessageListResponse(BaseModel):
    messages: list[SentMessageResponse]
    pagination: PaginationResponse


class PlatformCount(BaseModel):
    platform: str
    count: int


class PlatformStatusCount(BaseModel):
    platform: str
    status: str
    count: int


class ReceivedStats(BaseModel):
    total_messages: int
    recent_messages: int
    unique_users: int
    unique_chats: int
    by_platform: list[PlatformCount]


class SentStats(BaseModel):
    total_messages: int
    by_platform_and_status: list[PlatformStatusCount]


class MessageStatsResponse(BaseModel):
    """Aggregate message statistics for a project."""

    received: ReceivedStats
    sent: SentStats


class CleanupResponse(BaseModel):
    message: str
    deleted_count: int
