"""Unit tests for auth domain models."""

from dataclasses import FrozenInstanceError

import pytest

from gatekit_core.domain.auth import (
    AuthContext,
    AuthType,
    ProjectRef,
    ProjectRole,
    UserRef,
    role_satisfies,
)


class TestAuthContext:
    def test_api_key_context_requires_project(self):
        with pytest.raises(ValueError):
            AuthContext(auth_type=AuthType.API_KEY)

    def test_jwt_context_requires_user(self):
        with pytest.raises(ValueError):
            AuthContext(auth_type=AuthType.JWT)

    def test_for_api_key(self):
        context = AuthContext.for_api_key(
            project=ProjectRef(id="proj-1"),
            key_id="key-1",
            scopes=["messages:read", "messages:read"],
        )

        assert context.is_api_key
        assert context.scopes == frozenset({"messages:read"})
        assert context.principal_label == "key:key-1"

    def test_for_user(self):
        context = AuthContext.for_user(UserRef(user_id="u-1"), request_id="req-1")

        assert not context.is_api_key
        assert context.request_id == "req-1"
        assert context.principal_label == "user:u-1"

    def test_context_is_immutable(self):
        context = AuthContext.for_user(UserRef(user_id="u-1"))

        with pytest.raises(FrozenInstanceError):
            context.request_id = "req-2"


class TestRoleSatisfies:
    @pytest.mark.parametrize(
        "actual,required,expected",
        [
            (ProjectRole.OWNER, ProjectRole.ADMIN, True),
            (ProjectRole.ADMIN, ProjectRole.ADMIN, True),
            (ProjectRole.MEMBER, ProjectRole.ADMIN, False),
            (ProjectRole.VIEWER, ProjectRole.MEMBER, False),
            ("viewer", "viewer", True),
        ],
    )
    def test_rank_ordering(self, actual, required, expected):
        assert role_satisfies(actual, required) is expected
