"""Route-level tests for the authentication and project guard dependencies."""

from unittest.mock import MagicMock

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from gatekit_core.auth.dependencies import (
    authenticate,
    get_auth_context,
    get_auth_resolver,
    get_project_directory,
    require_project_access,
)
from gatekit_core.auth.resolver import AuthResolver
from gatekit_core.domain.auth import AuthContext, ProjectRef, ProjectRole, UserRef
from gatekit_core.runtime.errors import AuthenticationError, ServiceError
from tests.gatekit_core.fakes import (
    FakeApiKeyService,
    FakeProjectDirectory,
    FakeTokenAuthenticator,
)

KEY_RECORD = {
    "key_id": "key-1",
    "name": "Key",
    "scopes": ["projects:read", "messages:read"],
    "project": ProjectRef(id="proj-1", name="One", owner_id="owner-1"),
}


@pytest.fixture
def api_keys():
    return FakeApiKeyService({"gk_dev_proj1": KEY_RECORD})


@pytest.fixture
def directory():
    return FakeProjectDirectory(
        projects=[
            ProjectRef(id="proj-1", name="One", owner_id="owner-1"),
            ProjectRef(id="proj-2", name="Two", owner_id="owner-2"),
        ],
        roles={("proj-1", "viewer-1"): ProjectRole.VIEWER},
    )


@pytest.fixture
def client(api_keys, directory):
    app = FastAPI()

    @app.exception_handler(ServiceError)
    async def handle(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/health")
    def health(_auth: None = Depends(authenticate("health"))):
        return {"status": "ok"}

    @app.get("/projects/{project}")
    def read_project(project: str, auth: AuthContext = Depends(require_project_access("projects.get"))):
        return {"project": project, "principal": auth.principal_label}

    @app.patch("/projects/{project}")
    def update_project(
        project: str,
        auth: AuthContext = Depends(require_project_access("projects.update", ProjectRole.ADMIN)),
    ):
        return {"updated": project}

    tokens = FakeTokenAuthenticator(
        {
            "owner-token": UserRef(user_id="owner-1"),
            "viewer-token": UserRef(user_id="viewer-1"),
        }
    )
    app.dependency_overrides[get_auth_resolver] = lambda: AuthResolver(api_keys, local_jwt=tokens)
    app.dependency_overrides[get_project_directory] = lambda: directory
    return TestClient(app)


class TestAuthenticateDependency:
    def test_public_route_without_credentials(self, client, api_keys):
        response = client.get("/health")

        assert response.status_code == 200
        assert api_keys.validate_calls == []

    def test_missing_credentials_returns_401_body(self, client):
        response = client.get("/projects/proj-1")

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "UNAUTHORIZED"
        assert body["detail"] == "Authentication required. Provide either an API key or Bearer token."
        assert body["debug_id"]


class TestRequireProjectAccess:
    def test_api_key_for_own_project(self, client):
        response = client.get("/projects/proj-1", headers={"x-api-key": "gk_dev_proj1"})

        assert response.status_code == 200
        assert response.json()["principal"] == "key:key-1"

    def test_api_key_for_other_project_is_403(self, client):
        response = client.get("/projects/proj-2", headers={"x-api-key": "gk_dev_proj1"})

        assert response.status_code == 403
        assert response.json()["detail"] == "API key does not have access to perform projects.get"

    def test_unknown_project_is_404_before_access_check(self, client):
        response = client.get("/projects/ghost", headers={"x-api-key": "gk_dev_proj1"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Project 'ghost' not found"

    def test_missing_scope_is_403(self, client):
        response = client.patch("/projects/proj-1", headers={"x-api-key": "gk_dev_proj1"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions"

    def test_viewer_cannot_use_admin_route(self, client):
        response = client.patch(
            "/projects/proj-1", headers={"Authorization": "Bearer viewer-token"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient project role. Required role: admin"

    def test_viewer_can_read(self, client):
        response = client.get("/projects/proj-1", headers={"Authorization": "Bearer viewer-token"})

        assert response.status_code == 200

    def test_owner_passes_admin_route_without_membership(self, client):
        response = client.patch("/projects/proj-1", headers={"Authorization": "Bearer owner-token"})

        assert response.status_code == 200


class TestGetAuthContext:
    def test_returns_context_from_request_state(self):
        mock_request = MagicMock()
        mock_request.state.auth = AuthContext.for_user(UserRef(user_id="u-1"))

        assert get_auth_context(mock_request).user.user_id == "u-1"

    def test_raises_when_not_authenticated(self):
        mock_request = MagicMock()
        mock_request.state = MagicMock(spec=[])  # No 'auth' attribute

        with pytest.raises(AuthenticationError) as exc_info:
            get_auth_context(mock_request)

        assert exc_info.value.message_safe == "Not authenticated"
