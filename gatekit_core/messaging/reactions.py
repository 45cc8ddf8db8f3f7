"""
Reaction state reduction.

Reactions arrive as an append-only log of ``added`` and ``removed`` events.
Current state is derived at read time: scanning the log newest first, the first
event seen for each (message, user, emoji) is that key's latest state, and only
keys whose latest event is ``added`` are active.

All functions here are pure; the same log snapshot always yields the same result.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from gatekit_core.domain.messaging import IdentityInfo, ReactionEvent, ReactionType, ReactionUser

IdentityKey = tuple[str, str]  # (platform_id, provider_user_id)


def reduce_reaction_events(events: Iterable[ReactionEvent]) -> list[ReactionEvent]:
    """Collapse a reaction log to the currently active reactions.

    Args:
        events: Reaction events ordered by received_at, newest first. The
            order is trusted as given.

    Returns:
        The latest event of every (provider_message_id, provider_user_id, emoji)
        key whose latest event is an addition, in discovery order.
    """
    latest: dict[tuple[str, str, str], ReactionEvent] = {}
    for event in events:
        key = (event.provider_message_id, event.provider_user_id, event.emoji)
        if key not in latest:
            latest[key] = event

    return [e for e in latest.values() if e.reaction_type == ReactionType.ADDED]


def group_reactions(
    active: Iterable[ReactionEvent],
    identities: Mapping[IdentityKey, IdentityInfo],
) -> dict[str, dict[str, list[ReactionUser]]]:
    """Group active reactions by message, then by emoji.

    Both levels preserve discovery order.

    Args:
        active: Output of reduce_reaction_events.
        identities: Resolved identities keyed by (platform_id, provider_user_id).

    Returns:
        ``{provider_message_id: {emoji: [ReactionUser, ...]}}``
    """
    grouped: dict[str, dict[str, list[ReactionUser]]] = {}
    for event in active:
        by_emoji = grouped.setdefault(event.provider_message_id, {})
        by_emoji.setdefault(event.emoji, []).append(
            ReactionUser(
                id=event.provider_user_id,
                name=event.user_display or event.provider_user_id,
                identity=identities.get((event.platform_id, event.provider_user_id)),
            )
        )
    return grouped


def reaction_identity_keys(active: Iterable[ReactionEvent]) -> list[IdentityKey]:
    """Distinct (platform_id, provider_user_id) pairs, in discovery order."""
    return list(dict.fromkeys((e.platform_id, e.provider_user_id) for e in active))


def resolve_message_reactions(
    message_ids: Iterable[str],
    events: Iterable[ReactionEvent],
    identities: Mapping[IdentityKey, IdentityInfo],
) -> dict[str, dict[str, list[ReactionUser]]]:
    """Current reactions for every requested message.

    A message without active reactions maps to an empty dict.
    """
    grouped = group_reactions(reduce_reaction_events(events), identities)
    return {message_id: grouped.get(message_id, {}) for message_id in message_ids}
