"""Unit tests for the local JWT service."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import jwt
import pytest

from gatekit_core.auth.jwt_service import JwtService
from gatekit_core.config import settings
from gatekit_core.runtime.errors import AuthenticationError

SECRET = "test-secret-key-with-enough-length-for-hs256"


@pytest.fixture
def user_service():
    service = MagicMock()
    service.get_by_id.return_value = {
        "user_id": "user-1",
        "email": "alice@example.com",
        "name": "Alice",
        "is_admin": True,
    }
    return service


@pytest.fixture
def jwt_service(user_service):
    return JwtService(secret=SECRET, user_service=user_service, access_ttl=3600)


class TestJwtServiceInit:
    def test_requires_secret(self):
        with patch.object(settings, "JWT_SECRET", ""):
            with pytest.raises(ValueError, match="JWT_SECRET"):
                JwtService(secret="", user_service=MagicMock())


class TestAccessTokens:
    """Tests for token creation and verification."""

    def test_round_trip(self, jwt_service):
        token = jwt_service.create_access_token("user-1", "alice@example.com", is_admin=True)

        payload = jwt_service.verify_access_token(token)

        assert payload["sub"] == "user-1"
        assert payload["email"] == "alice@example.com"
        assert payload["is_admin"] is True
        assert payload["exp"] - payload["iat"] == 3600

    def test_token_signed_with_hs256(self, jwt_service):
        token = jwt_service.create_access_token("user-1", "alice@example.com")

        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    def test_wrong_secret_is_rejected(self, jwt_service, user_service):
        other = JwtService(secret="another-secret-key-with-enough-length", user_service=user_service)
        token = other.create_access_token("user-1", "alice@example.com")

        assert jwt_service.verify_access_token(token) is None

    def test_expired_token_is_rejected(self, user_service):
        service = JwtService(secret=SECRET, user_service=user_service, access_ttl=-120)
        token = service.create_access_token("user-1", "alice@example.com")

        assert service.verify_access_token(token) is None

    def test_garbage_is_rejected(self, jwt_service):
        assert jwt_service.verify_access_token("not-a-jwt") is None


class TestAuthenticate:
    def test_resolves_current_user(self, jwt_service, user_service):
        token = jwt_service.create_access_token("user-1", "stale@example.com")

        user = jwt_service.authenticate(token)

        assert user.user_id == "user-1"
        assert user.email == "alice@example.com"
        assert user.is_admin is True
        user_service.get_by_id.assert_called_once_with("user-1")

    def test_invalid_token(self, jwt_service):
        with pytest.raises(AuthenticationError) as exc_info:
            jwt_service.authenticate("junk")

        assert exc_info.value.message_safe == "Invalid or expired token"

    def test_deleted_user(self, jwt_service, user_service):
        user_service.get_by_id.return_value = None
        token = jwt_service.create_access_token("user-1", "alice@example.com")

        with pytest.raises(AuthenticationError) as exc_info:
            jwt_service.authenticate(token)

        assert exc_info.value.message_safe == "User not found"
