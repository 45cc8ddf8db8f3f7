"""
Messages module factory.

Factory functions wiring the message service to its repository and the
identity resolver.
"""

from __future__ import annotations

from functools import lru_cache

from app.messages.protocols import MessageRepository
from app.messages.services.message_repository import PostgresMessageRepository
from app.messages.services.message_service import MessageService
from gatekit_core.messaging.identity_resolver import IdentityResolver


@lru_cache()
def get_message_repository() -> MessageRepository:
    """Get the message repository instance."""
    return PostgresMessageRepository()


@lru_cache()
def get_identity_resolver() -> IdentityResolver:
    """Get the identity resolver instance."""
    return IdentityResolver()


def get_message_service() -> MessageService:
    """Get the message service instance."""
    return MessageService(
        repository=get_message_repository(),
        identity_resolver=get_identity_resolver(),
    )
