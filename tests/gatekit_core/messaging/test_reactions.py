"""Unit tests for reaction state reduction."""

from datetime import datetime, timedelta, timezone

from gatekit_core.domain.messaging import IdentityInfo, ReactionEvent, ReactionType
from gatekit_core.messaging.reactions import (
    group_reactions,
    reaction_identity_keys,
    reduce_reaction_events,
    resolve_message_reactions,
)

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def event(user, emoji, kind, minutes, message="discord-msg-1", display=None, platform="plat-1"):
    return ReactionEvent(
        platform_id=platform,
        provider_message_id=message,
        provider_user_id=user,
        emoji=emoji,
        reaction_type=ReactionType(kind),
        received_at=T0 + timedelta(minutes=minutes),
        user_display=display,
    )


def newest_first(*events):
    return sorted(events, key=lambda e: e.received_at, reverse=True)


def as_dicts(grouped):
    return {
        message: {emoji: [u.to_dict() for u in users] for emoji, users in by_emoji.items()}
        for message, by_emoji in grouped.items()
    }


class TestReduceReactionEvents:
    """Tests for collapsing the add/remove log."""

    def test_add_then_remove_excludes_user(self):
        events = newest_first(event("A", "👍", "added", 1), event("A", "👍", "removed", 2))

        assert reduce_reaction_events(events) == []

    def test_add_remove_add_includes_user(self):
        events = newest_first(
            event("A", "👍", "added", 1),
            event("A", "👍", "removed", 2),
            event("A", "👍", "added", 3),
        )

        active = reduce_reaction_events(events)

        assert len(active) == 1
        assert active[0].received_at == T0 + timedelta(minutes=3)

    def test_keys_are_per_message_user_and_emoji(self):
        events = newest_first(
            event("A", "👍", "added", 1),
            event("A", "❤️", "added", 2),
            event("A", "👍", "added", 3, message="discord-msg-2"),
            event("A", "❤️", "removed", 4),
        )

        active = reduce_reaction_events(events)

        assert {(e.provider_message_id, e.emoji) for e in active} == {
            ("discord-msg-1", "👍"),
            ("discord-msg-2", "👍"),
        }

    def test_input_order_is_trusted(self):
        """The first event in the given order wins, whatever its timestamp."""
        events = [event("A", "👍", "removed", 1), event("A", "👍", "added", 5)]

        assert reduce_reaction_events(events) == []

    def test_reduction_is_idempotent(self):
        events = newest_first(
            event("A", "👍", "added", 1),
            event("B", "👍", "added", 2),
            event("A", "👍", "removed", 3),
            event("C", "🎉", "added", 4),
        )

        first = group_reactions(reduce_reaction_events(events), {})
        second = group_reactions(reduce_reaction_events(list(events)), {})

        assert as_dicts(first) == as_dicts(second)


class TestGroupReactions:
    def test_concrete_scenario_without_identities(self):
        """Alice and Bob on 👍, Charlie on ❤️, grouped in discovery order."""
        events = [
            event("user-789", "👍", "added", 3, display="Alice"),
            event("user-456", "👍", "added", 2, display="Bob"),
            event("user-321", "❤️", "added", 1, display="Charlie"),
        ]

        resolved = resolve_message_reactions(["discord-msg-1"], events, {})

        assert as_dicts(resolved) == {
            "discord-msg-1": {
                "👍": [
                    {"id": "user-789", "name": "Alice", "identity": None},
                    {"id": "user-456", "name": "Bob", "identity": None},
                ],
                "❤️": [{"id": "user-321", "name": "Charlie", "identity": None}],
            }
        }

    def test_message_without_events_maps_to_empty_dict(self):
        resolved = resolve_message_reactions(["discord-msg-9"], [], {})

        assert resolved == {"discord-msg-9": {}}
        assert resolved["discord-msg-9"] is not None

    def test_name_falls_back_to_user_id(self):
        grouped = group_reactions([event("user-1", "👍", "added", 1)], {})

        assert grouped["discord-msg-1"]["👍"][0].name == "user-1"

    def test_identity_attached_when_resolved(self):
        identity = IdentityInfo(id="ident-1", display_name="Alice A.", email="alice@example.com")
        grouped = group_reactions(
            [event("user-789", "👍", "added", 1, display="Alice")],
            {("plat-1", "user-789"): identity},
        )

        assert grouped["discord-msg-1"]["👍"][0].identity == identity

    def test_identity_lookup_is_per_platform(self):
        identity = IdentityInfo(id="ident-1")
        grouped = group_reactions(
            [event("user-789", "👍", "added", 1, platform="plat-2")],
            {("plat-1", "user-789"): identity},
        )

        assert grouped["discord-msg-1"]["👍"][0].identity is None


class TestReactionIdentityKeys:
    def test_distinct_keys_in_discovery_order(self):
        active = [
            event("B", "👍", "added", 3),
            event("A", "👍", "added", 2),
            event("B", "❤️", "added", 1),
        ]

        assert reaction_identity_keys(active) == [("plat-1", "B"), ("plat-1", "A")]
