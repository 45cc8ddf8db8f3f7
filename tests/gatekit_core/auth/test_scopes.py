"""Unit tests for scope enforcement."""

import pytest

from gatekit_core.auth.scopes import has_required_scopes, validate_scopes
from gatekit_core.domain.auth import ALL_SCOPES, ApiScope
from gatekit_core.runtime.errors import BadRequestError


class TestHasRequiredScopes:
    """Tests for has_required_scopes."""

    def test_empty_requirement_always_allows(self):
        """No required scopes passes even with no granted scopes."""
        assert has_required_scopes([], []) is True
        assert has_required_scopes([], ["messages:read"]) is True

    def test_allows_when_required_is_subset(self):
        assert has_required_scopes(
            ["messages:read", "keys:read"],
            ["keys:read", "messages:read", "projects:write"],
        )

    def test_rejects_when_any_scope_missing(self):
        """Holding one of two required scopes is not enough."""
        assert not has_required_scopes(["messages:read", "keys:write"], ["messages:read"])

    def test_accepts_enum_members(self):
        assert has_required_scopes([ApiScope.MESSAGES_READ], ["messages:read"])
        assert has_required_scopes(["messages:read"], [ApiScope.MESSAGES_READ])

    @pytest.mark.parametrize(
        "required,granted,expected",
        [
            (["a"], ["a"], True),
            (["a", "b"], ["b"], False),
            (["a"], [], False),
            ([], ["a"], True),
            (["a", "a"], ["a"], True),
        ],
    )
    def test_subset_semantics(self, required, granted, expected):
        assert has_required_scopes(required, granted) is expected


class TestValidateScopes:
    """Tests for validate_scopes (key creation input)."""

    def test_returns_deduplicated_scopes_in_order(self):
        result = validate_scopes(["messages:read", "keys:read", "messages:read"])

        assert result == ["messages:read", "keys:read"]

    def test_rejects_unknown_scope(self):
        with pytest.raises(BadRequestError) as exc_info:
            validate_scopes(["messages:read", "admin"])

        assert "Unknown scope 'admin'" in exc_info.value.message_safe

    def test_rejects_empty_list(self):
        with pytest.raises(BadRequestError) as exc_info:
            validate_scopes([])

        assert exc_info.value.message_safe == "At least one scope is required"

    def test_every_declared_scope_is_valid(self):
        assert sorted(validate_scopes(sorted(ALL_SCOPES))) == sorted(ALL_SCOPES)

    def test_scope_strings_follow_resource_access_pattern(self):
        for scope in ALL_SCOPES:
            resource, access = scope.split(":")
            assert resource in {
                "identities", "projects", "platforms", "messages", "webhooks", "keys", "members",
            }
            assert access in {"read", "write"}
