"""
Messages module routes.

Read access to a project's received and sent messages:
- Filtered, paginated message listing with optional reactions and raw payloads
- Single message detail with current reactions
- Aggregate statistics
- Age-based cleanup of received messages

Handlers are plain functions so blocking database calls run in the threadpool.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from app.messages.factory import get_message_service
from app.messages.schemas import (
    CleanupResponse,
    MessageListResponse,
    MessageStatsResponse,
    ReceivedMessageResponse,
    SentMessageListResponse,
)
from app.messages.services.message_service import MessageService
from gatekit_core.auth.dependencies import require_project_access
from gatekit_core.config import settings
from gatekit_core.domain.auth import AuthContext
from gatekit_core.domain.messaging import MessageQuery

router = APIRouter(prefix="/api/v1/projects/{project}/messages", tags=["messages"])


@router.get(
    "",
    response_model=MessageListResponse,
    response_model_exclude_unset=True,
    summary="List received messages",
)
def list_messages(
    project: str,
    platform: Optional[str] = Query(None, description="Platform type, e.g. discord"),
    platform_id: Optional[str] = Query(None, description="Platform instance id"),
    chat_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    order: Literal["asc", "desc"] = Query("desc"),
    raw: bool = Query(False, description="Include raw platform payloads"),
    reactions: bool = Query(False, description="Include current reactions"),
    auth: AuthContext = Depends(require_project_access("messages.list")),
    service: MessageService = Depends(get_message_service),
):
    """
    List received messages, newest first by default.

    With `reactions=true` every message carries its current reactions grouped by
    emoji (an empty object when there are none).
    """
    query = MessageQuery(
        platform=platform,
        platform_id=platform_id,
        chat_id=chat_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
        order=order,
        raw=raw,
        reactions=reactions,
    )
    return service.list_messages(auth, project, query)


@router.get("/stats", response_model=MessageStatsResponse, summary="Message statistics")
def get_message_stats(
    project: str,
    auth: AuthContext = Depends(require_project_access("messages.stats")),
    service: MessageService = Depends(get_message_service),
):
    """Received and sent message counts for the project."""
    return service.get_stats(auth, project)


@router.get("/sent", response_model=SentMessageListResponse, summary="List sent messages")
def list_sent_messages(
    project: str,
    platform: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="pending, sent or failed"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_project_access("messages.sent")),
    service: MessageService = Depends(get_message_service),
):
    """List outbound messages with resolved identities of user targets."""
    return service.list_sent(auth, project, platform, status, limit, offset)


@router.delete("/cleanup", response_model=CleanupResponse, summary="Delete old messages")
def cleanup_messages(
    project: str,
    days_before: int = Query(settings.MESSAGE_RETENTION_DAYS, ge=1),
    auth: AuthContext = Depends(require_project_access("messages.cleanup")),
    service: MessageService = Depends(get_message_service),
):
    """Delete received messages older than `days_before` days."""
    return service.cleanup(auth, project, days_before)


@router.get(
    "/{message_id}",
    response_model=ReceivedMessageResponse,
    response_model_exclude_unset=True,
    summary="Get a received message",
)
def get_message(
    project: str,
    message_id: str,
    auth: AuthContext = Depends(require_project_access("messages.get")),
    service: MessageService = Depends(get_message_service),
):
    """Get one received message with its raw payload and current reactions."""
    return service.get_message(auth, project, message_id)
