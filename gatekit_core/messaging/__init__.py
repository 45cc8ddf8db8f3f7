"""
Message query support for gatekit.

This package provides:
- reactions: reduction of the append-only reaction log to current state
- identity_resolver: batched platform-user to identity resolution
"""

from .identity_resolver import IdentityAliasStore, IdentityResolver, PostgresIdentityAliasStore
from .reactions import group_reactions, reduce_reaction_events, resolve_message_reactions

__all__ = [
    "IdentityAliasStore",
    "IdentityResolver",
    "PostgresIdentityAliasStore",
    "group_reactions",
    "reduce_reaction_events",
    "resolve_message_reactions",
]
