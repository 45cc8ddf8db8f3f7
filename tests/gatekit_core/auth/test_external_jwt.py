"""Unit tests for external-issuer token authentication."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from gatekit_core.auth.external_jwt import ExternalJwtAuthenticator, JwksTokenVerifier
from gatekit_core.config import settings
from gatekit_core.runtime.errors import AuthenticationError


class FakeVerifier:
    def __init__(self, claims=None, error=None):
        self.claims = claims or {}
        self.error = error

    def verify(self, token):
        if self.error:
            raise self.error
        return self.claims


class TestJwksTokenVerifier:
    def test_issuer_and_jwks_url_derived_from_domain(self):
        verifier = JwksTokenVerifier("tenant.eu.auth0.com", "https://api.gatekit.dev")

        assert verifier.jwks_url == "https://tenant.eu.auth0.com/.well-known/jwks.json"
        assert verifier.issuer == "https://tenant.eu.auth0.com/"

    def test_unreachable_jwks_is_authentication_error(self):
        from jwt.exceptions import PyJWKClientError

        verifier = JwksTokenVerifier("tenant.eu.auth0.com", "aud")
        client = MagicMock()
        client.get_signing_key_from_jwt.side_effect = PyJWKClientError("boom")

        with patch.object(verifier, "_get_jwks_client", return_value=client):
            with pytest.raises(AuthenticationError) as exc_info:
                verifier.verify("token")

        assert exc_info.value.message_safe == "Invalid or expired token"

    def test_invalid_audience_is_authentication_error(self):
        from jwt.exceptions import InvalidAudienceError

        verifier = JwksTokenVerifier("tenant.eu.auth0.com", "aud")
        client = MagicMock()

        with patch.object(verifier, "_get_jwks_client", return_value=client), \
             patch("jwt.decode", side_effect=InvalidAudienceError("bad aud")):
            with pytest.raises(AuthenticationError):
                verifier.verify("token")


class TestExternalJwtAuthenticator:
    def test_upserts_user_from_claims(self):
        user_service = MagicMock()
        user_service.upsert_external.return_value = {
            "user_id": "local-42",
            "email": "bob@example.com",
            "name": "Bob",
            "is_admin": False,
        }
        authenticator = ExternalJwtAuthenticator(
            FakeVerifier({"sub": "auth0|abc", "email": "bob@example.com", "name": "Bob"}),
            user_service=user_service,
        )

        user = authenticator.authenticate("token")

        assert user.user_id == "local-42"
        user_service.upsert_external.assert_called_once_with(
            subject="auth0|abc", email="bob@example.com", name="Bob"
        )

    def test_verification_failure_propagates(self):
        user_service = MagicMock()
        authenticator = ExternalJwtAuthenticator(
            FakeVerifier(error=AuthenticationError("Invalid or expired token")),
            user_service=user_service,
        )

        with pytest.raises(AuthenticationError):
            authenticator.authenticate("token")

        user_service.upsert_external.assert_not_called()

    def test_from_settings_requires_domain_and_audience(self):
        with patch.object(settings, "AUTH0_DOMAIN", "tenant.auth0.com"), \
             patch.object(settings, "AUTH0_AUDIENCE", ""):
            assert ExternalJwtAuthenticator.from_settings() is None

    def test_from_settings_builds_jwks_verifier(self):
        with patch.object(settings, "AUTH0_DOMAIN", "tenant.auth0.com"), \
             patch.object(settings, "AUTH0_AUDIENCE", "https://api"):
            authenticator = ExternalJwtAuthenticator.from_settings()

        assert isinstance(authenticator.verifier, JwksTokenVerifier)
        assert authenticator.verifier.audience == "https://api"
