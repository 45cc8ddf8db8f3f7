"""Unit tests for MessageService."""

from datetime import datetime, timedelta, timezone

import pytest

from app.messages.services.message_service import MessageService
from gatekit_core.domain.messaging import (
    IdentityInfo,
    MessageQuery,
    ReactionEvent,
    ReactionType,
    ReceivedMessage,
    SentMessage,
)
from gatekit_core.messaging.identity_resolver import AliasMatch, IdentityResolver
from gatekit_core.runtime.errors import BadRequestError, ForbiddenError, GuardBypassError, NotFoundError
from tests.app.messages.fakes import FakeMessageRepository
from tests.gatekit_core.fakes import FakeAliasStore, api_key_context, user_context

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
ALICE_IDENTITY = IdentityInfo(id="ident-alice", display_name="Alice", email="alice@example.com")


def received(msg_id, provider_id, user="user-789", project="proj-1", minutes=0):
    return ReceivedMessage(
        id=msg_id,
        project_id=project,
        platform="discord",
        platform_id="plat-1",
        provider_message_id=provider_id,
        provider_chat_id="chat-1",
        provider_user_id=user,
        user_display="Alice",
        message_text="hello",
        raw_data={"content": "hello"},
        received_at=T0 + timedelta(minutes=minutes),
    )


def reaction(provider_id, user, emoji, kind, minutes, display=None):
    return ReactionEvent(
        platform_id="plat-1",
        provider_message_id=provider_id,
        provider_user_id=user,
        emoji=emoji,
        reaction_type=ReactionType(kind),
        received_at=T0 + timedelta(minutes=minutes),
        user_display=display,
    )


@pytest.fixture
def alias_store():
    return FakeAliasStore([AliasMatch("plat-1", "user-789", "proj-1", ALICE_IDENTITY)])


@pytest.fixture
def repository():
    return FakeMessageRepository(
        received=[
            received("m-1", "discord-msg-1"),
            received("m-2", "discord-msg-2", user="user-456", minutes=1),
        ],
        reactions=[
            reaction("discord-msg-1", "user-456", "👍", "added", 12, display="Bob"),
            reaction("discord-msg-1", "user-789", "👍", "removed", 11, display="Alice"),
            reaction("discord-msg-1", "user-789", "👍", "added", 10, display="Alice"),
        ],
    )


@pytest.fixture
def service(repository, alias_store):
    return MessageService(repository, IdentityResolver(alias_store))


class TestListMessages:
    """Tests for message listing."""

    def test_lists_with_pagination(self, service):
        result = service.list_messages(api_key_context("proj-1"), "proj-1", MessageQuery(limit=1))

        assert len(result["messages"]) == 1
        assert result["pagination"] == {"total": 2, "limit": 1, "offset": 0, "has_more": True}

    def test_reactions_omitted_unless_requested(self, service, repository):
        result = service.list_messages(api_key_context("proj-1"), "proj-1", MessageQuery())

        assert all("reactions" not in m for m in result["messages"])
        assert all("raw_data" not in m for m in result["messages"])
        assert repository.reaction_calls == []

    def test_reactions_reduced_and_empty_dict_when_none(self, service):
        result = service.list_messages(
            api_key_context("proj-1"), "proj-1", MessageQuery(reactions=True)
        )
        by_id = {m["id"]: m for m in result["messages"]}

        assert by_id["m-1"]["reactions"] == {
            "👍": [{"id": "user-456", "name": "Bob", "identity": None}]
        }
        assert by_id["m-2"]["reactions"] == {}

    def test_sender_identity_resolved(self, service):
        result = service.list_messages(api_key_context("proj-1"), "proj-1", MessageQuery())
        by_id = {m["id"]: m for m in result["messages"]}

        assert by_id["m-1"]["identity"] == ALICE_IDENTITY.to_dict()
        assert by_id["m-2"]["identity"] is None

    def test_senders_and_reactors_resolved_in_one_lookup(self, service, alias_store):
        service.list_messages(api_key_context("proj-1"), "proj-1", MessageQuery(reactions=True))

        assert len(alias_store.calls) == 1

    def test_raw_included_on_request(self, service):
        result = service.list_messages(api_key_context("proj-1"), "proj-1", MessageQuery(raw=True))

        assert result["messages"][0]["raw_data"] == {"content": "hello"}

    @pytest.mark.parametrize(
        "query",
        [MessageQuery(limit=0), MessageQuery(limit=101), MessageQuery(offset=-1), MessageQuery(order="up")],
    )
    def test_invalid_paging(self, service, query):
        with pytest.raises(BadRequestError):
            service.list_messages(api_key_context("proj-1"), "proj-1", query)

    def test_rejects_key_of_other_project(self, service):
        with pytest.raises(ForbiddenError):
            service.list_messages(api_key_context("proj-2"), "proj-1", MessageQuery())

    def test_missing_context_is_guard_bypass(self, service, repository):
        with pytest.raises(GuardBypassError):
            service.list_messages(None, "proj-1", MessageQuery())


class TestGetMessage:
    def test_reactions_always_resolved(self, service):
        message = service.get_message(user_context(), "proj-1", "m-2")

        assert message["reactions"] == {}
        assert message["raw_data"] == {"content": "hello"}

    def test_unknown_message(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_message(user_context(), "proj-1", "nope")

        assert exc_info.value.message_safe == "Message not found"

    def test_message_of_other_project_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.get_message(api_key_context("proj-2"), "proj-2", "m-1")


class TestListSent:
    def test_user_targets_get_identities(self, alias_store):
        repository = FakeMessageRepository(
            sent=[
                SentMessage(
                    id="s-1", platform_id="plat-1", platform="discord", target_chat_id="dm-1",
                    target_type="user", target_user_id="user-789", status="sent", created_at=T0,
                ),
                SentMessage(
                    id="s-2", platform_id="plat-1", platform="discord", target_chat_id="chan-1",
                    target_type="channel", status="failed", created_at=T0,
                ),
            ]
        )
        service = MessageService(repository, IdentityResolver(alias_store))

        result = service.list_sent(api_key_context("proj-1"), "proj-1")

        by_id = {m["id"]: m for m in result["messages"]}
        assert by_id["s-1"]["target_identity"] == ALICE_IDENTITY.to_dict()
        assert by_id["s-2"]["target_identity"] is None
        assert result["pagination"]["total"] == 2


class TestCleanup:
    def test_deletes_older_messages(self, repository):
        service = MessageService(repository, IdentityResolver(FakeAliasStore()))

        result = service.cleanup(api_key_context("proj-1"), "proj-1", days_before=1)

        assert result == {"message": "Deleted 2 messages older than 1 days", "deleted_count": 2}
        assert repository.delete_calls[0][0] == "proj-1"

    def test_rejects_non_positive_days(self, service):
        with pytest.raises(BadRequestError):
            service.cleanup(api_key_context("proj-1"), "proj-1", days_before=0)
