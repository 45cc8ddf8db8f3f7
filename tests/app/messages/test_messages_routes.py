"""Route tests for the messages module."""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.messages.factory import get_message_service
from app.messages.services.message_service import MessageService
from gatekit_core.auth.dependencies import get_auth_resolver, get_project_directory
from gatekit_core.auth.resolver import AuthResolver
from gatekit_core.domain.auth import ProjectRef
from gatekit_core.messaging.identity_resolver import IdentityResolver
from tests.app.messages.fakes import FakeMessageRepository
from tests.app.messages.test_message_service import received, reaction
from tests.gatekit_core.fakes import FakeAliasStore, FakeApiKeyService, FakeProjectDirectory

KEY = {
    "key_id": "key-1",
    "name": "Reader",
    "scopes": ["messages:read"],
    "project": ProjectRef(id="proj-1", name="One", owner_id="owner-1"),
}


@pytest.fixture
def client():
    repository = FakeMessageRepository(
        received=[received("m-1", "discord-msg-1")],
        reactions=[reaction("discord-msg-1", "user-321", "❤️", "added", 5, display="Charlie")],
    )
    directory = FakeProjectDirectory([ProjectRef(id="proj-1", name="One", owner_id="owner-1")])

    app.dependency_overrides[get_auth_resolver] = lambda: AuthResolver(
        FakeApiKeyService({"gk_dev_reader": KEY})
    )
    app.dependency_overrides[get_project_directory] = lambda: directory
    app.dependency_overrides[get_message_service] = lambda: MessageService(
        repository, IdentityResolver(FakeAliasStore())
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


HEADERS = {"x-api-key": "gk_dev_reader"}


class TestMessagesRoutes:
    def test_list_with_reactions(self, client):
        response = client.get("/api/v1/projects/proj-1/messages?reactions=true", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["messages"][0]["reactions"] == {
            "❤️": [{"id": "user-321", "name": "Charlie", "identity": None}]
        }
        assert body["pagination"]["has_more"] is False

    def test_list_without_reactions_omits_field(self, client):
        response = client.get("/api/v1/projects/proj-1/messages", headers=HEADERS)

        assert "reactions" not in response.json()["messages"][0]

    def test_limit_out_of_range_is_rejected(self, client):
        response = client.get("/api/v1/projects/proj-1/messages?limit=500", headers=HEADERS)

        assert response.status_code == 422

    def test_get_message(self, client):
        response = client.get("/api/v1/projects/proj-1/messages/m-1", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["raw_data"] == {"content": "hello"}

    def test_stats_route_not_shadowed_by_message_id(self, client):
        response = client.get("/api/v1/projects/proj-1/messages/stats", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["received"]["total_messages"] == 1

    def test_cleanup_needs_write_scope(self, client):
        response = client.delete(
            "/api/v1/projects/proj-1/messages/cleanup?days_before=7", headers=HEADERS
        )

        assert response.status_code == 403

    def test_unknown_project_is_404(self, client):
        response = client.get("/api/v1/projects/other/messages", headers=HEADERS)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_request_id_echoed(self, client):
        response = client.get(
            "/api/v1/projects/proj-1/messages", headers={**HEADERS, "X-Request-Id": "trace-1"}
        )

        assert response.headers["X-Request-Id"] == "trace-1"
