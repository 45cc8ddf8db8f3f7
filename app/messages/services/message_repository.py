"""
MessageRepository: read and retention operations for message records.

Received messages and reactions are written by the platform webhooks; this
repository only queries them and purges old received messages.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from gatekit_core.domain.messaging import (
    MessageQuery,
    ReactionEvent,
    ReactionType,
    ReceivedMessage,
    SentMessage,
)
from gatekit_core.infrastructure.postgres import get_db_connection

RECEIVED_COLUMNS = """
    id, project_id, platform, platform_id, provider_message_id, provider_chat_id,
    provider_user_id, user_display, message_text, message_type, raw_data, received_at
"""

SENT_COLUMNS = """
    id, platform_id, platform, job_id, provider_message_id, target_chat_id,
    target_user_id, target_type, message_text, status, error_message, sent_at, created_at
"""


def _received_where(project_id: str, query: MessageQuery) -> tuple[str, list[Any]]:
    clauses = ["project_id = %s"]
    params: list[Any] = [project_id]

    if query.platform:
        clauses.append("platform = %s")
        params.append(query.platform)
    if query.platform_id:
        clauses.append("platform_id = %s")
        params.append(query.platform_id)
    if query.chat_id:
        clauses.append("provider_chat_id = %s")
        params.append(query.chat_id)
    if query.user_id:
        clauses.append("provider_user_id = %s")
        params.append(query.user_id)
    if query.start_date:
        clauses.append("received_at >= %s")
        params.append(query.start_date)
    if query.end_date:
        clauses.append("received_at <= %s")
        params.append(query.end_date)

    return " AND ".join(clauses), params


def _row_to_received(row: tuple) -> ReceivedMessage:
    return ReceivedMessage(
        id=str(row[0]),
        project_id=row[1],
        platform=row[2],
        platform_id=str(row[3]),
        provider_message_id=row[4],
        provider_chat_id=row[5],
        provider_user_id=row[6],
        user_display=row[7],
        message_text=row[8],
        message_type=row[9],
        raw_data=row[10],
        received_at=row[11],
    )


def _row_to_reaction(row: tuple) -> ReactionEvent:
    return ReactionEvent(
        platform_id=str(row[0]),
        provider_message_id=row[1],
        provider_user_id=row[2],
        user_display=row[3],
        emoji=row[4],
        reaction_type=ReactionType(row[5]),
        received_at=row[6],
    )


def _row_to_sent(row: tuple) -> SentMessage:
    return SentMessage(
        id=str(row[0]),
        platform_id=str(row[1]),
        platform=row[2],
        job_id=row[3],
        provider_message_id=row[4],
        target_chat_id=row[5],
        target_user_id=row[6],
        target_type=row[7],
        message_text=row[8],
        status=row[9],
        error_message=row[10],
        sent_at=row[11],
        created_at=row[12],
    )


class PostgresMessageRepository:
    """Repository for message records in PostgreSQL."""

    def list_received(
        self, project_id: str, query: MessageQuery
    ) -> tuple[list[ReceivedMessage], int]:
        where, params = _received_where(project_id, query)
        order = "ASC" if query.order == "asc" else "DESC"

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {RECEIVED_COLUMNS}
                FROM received_messages
                WHERE {where}
                ORDER BY received_at {order}
                LIMIT %s OFFSET %s
                """,
                (*params, query.limit, query.offset),
            )
            rows = cursor.fetchall()

            cursor.execute(f"SELECT COUNT(*) FROM received_messages WHERE {where}", params)
            total = cursor.fetchone()[0]

        return [_row_to_received(row) for row in rows], total

    def get_received(self, project_id: str, message_id: str) -> ReceivedMessage | None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {RECEIVED_COLUMNS}
                FROM received_messages
                WHERE id = %s AND project_id = %s
                """,
                (message_id, project_id),
            )
            row = cursor.fetchone()

        return _row_to_received(row) if row else None

    def list_reactions(
        self, project_id: str, message_refs: list[tuple[str, str]]
    ) -> list[ReactionEvent]:
        """Fetch the full add/remove log for the referenced messages, newest first."""
        if not message_refs:
            return []

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT platform_id, provider_message_id, provider_user_id, user_display,
                       emoji, reaction_type, received_at
                FROM received_reactions
                WHERE project_id = %s
                  AND (platform_id, provider_message_id) IN (
                      SELECT * FROM unnest(%s::text[], %s::text[])
                  )
                ORDER BY received_at DESC
                """,
                (
                    project_id,
                    [ref[0] for ref in message_refs],
                    [ref[1] for ref in message_refs],
                ),
            )
            rows = cursor.fetchall()

        return [_row_to_reaction(row) for row in rows]

    def list_received_by_users(
        self, project_id: str, user_keys: list[tuple[str, str]]
    ) -> list[ReceivedMessage]:
        """Every received message sent by the (platform_id, provider_user_id)
        users, newest first."""
        if not user_keys:
            return []

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {RECEIVED_COLUMNS}
                FROM received_messages
                WHERE project_id = %s
                  AND (platform_id, provider_user_id) IN (
                      SELECT * FROM unnest(%s::text[], %s::text[])
                  )
                ORDER BY received_at DESC
                """,
                (project_id, [k[0] for k in user_keys], [k[1] for k in user_keys]),
            )
            rows = cursor.fetchall()

        return [_row_to_received(row) for row in rows]

    def list_reactions_by_users(
        self, project_id: str, user_keys: list[tuple[str, str]]
    ) -> list[ReactionEvent]:
        if not user_keys:
            return []

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT platform_id, provider_message_id, provider_user_id, user_display,
                       emoji, reaction_type, received_at
                FROM received_reactions
                WHERE project_id = %s
                  AND (platform_id, provider_user_id) IN (
                      SELECT * FROM unnest(%s::text[], %s::text[])
                  )
                ORDER BY received_at DESC
                """,
                (project_id, [k[0] for k in user_keys], [k[1] for k in user_keys]),
            )
            rows = cursor.fetchall()

        return [_row_to_reaction(row) for row in rows]

    def get_stats(self, project_id: str) -> dict[str, Any]:
        since = datetime.now(timezone.utc) - timedelta(hours=24)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT COUNT(*),
                       COUNT(*) FILTER (WHERE received_at >= %s),
                       COUNT(DISTINCT provider_user_id),
                       COUNT(DISTINCT provider_chat_id)
                FROM received_messages
                WHERE project_id = %s
                """,
                (since, project_id),
            )
            total, recent, unique_users, unique_chats = cursor.fetchone()

            cursor.execute(
                """
                SELECT platform, COUNT(*)
                FROM received_messages
                WHERE project_id = %s
                GROUP BY platform
                ORDER BY platform
                """,
                (project_id,),
            )
            by_platform = cursor.fetchall()

            cursor.execute(
                """
                SELECT platform, status, COUNT(*)
                FROM sent_messages
                WHERE project_id = %s
                GROUP BY platform, status
                ORDER BY platform, status
                """,
                (project_id,),
            )
            sent_by_platform = cursor.fetchall()

        return {
            "received": {
                "total_messages": total,
                "recent_messages": recent,
                "unique_users": unique_users,
                "unique_chats": unique_chats,
                "by_platform": [{"platform": p, "count": c} for p, c in by_platform],
            },
            "sent": {
                "total_messages": sum(row[2] for row in sent_by_platform),
                "by_platform_and_status": [
                    {"platform": p, "status": s, "count": c} for p, s, c in sent_by_platform
                ],
            },
        }

    def list_sent(
        self,
        project_id: str,
        platform: str | None,
        status: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[SentMessage], int]:
        clauses = ["project_id = %s"]
        params: list[Any] = [project_id]
        if platform:
            clauses.append("platform = %s")
            params.append(platform)
        if status:
            clauses.append("status = %s")
            params.append(status)
        where = " AND ".join(clauses)

        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {SENT_COLUMNS}
                FROM sent_messages
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
                """,
                (*params, limit, offset),
            )
            rows = cursor.fetchall()

            cursor.execute(f"SELECT COUNT(*) FROM sent_messages WHERE {where}", params)
            total = cursor.fetchone()[0]

        return [_row_to_sent(row) for row in rows], total

    def delete_received_before(self, project_id: str | None, cutoff: datetime) -> int:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            if project_id is None:
                cursor.execute(
                    "DELETE FROM received_messages WHERE received_at < %s",
                    (cutoff,),
                )
            else:
                cursor.execute(
                    "DELETE FROM received_messages WHERE project_id = %s AND received_at < %s",
                    (project_id, cutoff),
                )
            deleted = cursor.rowcount
            conn.commit()

        logger.info(
            f"Deleted {deleted} received messages before {cutoff.isoformat()} "
            f"(project={project_id or '*'})"
        )
        return deleted
