"""Verification of tokens issued by an external OIDC provider (Auth0).

Provides:
- TokenVerifier: Protocol for token verification
- JwksTokenVerifier: RS256 verifier backed by the issuer's JWKS endpoint
- ExternalJwtAuthenticator: verifies a token and maps it to a local user
"""

from __future__ import annotations

import threading
from typing import Any, Protocol

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)
from loguru import logger

from gatekit_core.auth.user_service import UserService
from gatekit_core.config import settings
from gatekit_core.domain.auth import UserRef
from gatekit_core.runtime.errors import AuthenticationError

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60


class TokenVerifier(Protocol):
    """Protocol for token verification."""

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            AuthenticationError: Token is invalid, expired, or malformed.
        """
        ...


class JwksTokenVerifier:
    """Token verifier using the issuer's JWKS.

    Validates:
    - Signature via JWKS (RS256 only)
    - exp with ±60s clock skew
    - iss equals ``https://<domain>/``
    - aud equals the configured audience
    """

    def __init__(self, domain: str, audience: str, cache_ttl: int = 3600):
        """Initialize the verifier.

        Args:
            domain: Issuer domain, e.g. ``tenant.eu.auth0.com``.
            audience: Expected audience.
            cache_ttl: How long to cache JWKS keys in seconds.
        """
        self.jwks_url = f"https://{domain}/.well-known/jwks.json"
        self.issuer = f"https://{domain}/"
        self.audience = audience
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._jwks_lock = threading.Lock()

    def _get_jwks_client(self) -> PyJWKClient:
        """Get or create the JWKS client with lazy initialization."""
        with self._jwks_lock:
            if self._jwks_client is None:
                self._jwks_client = PyJWKClient(
                    self.jwks_url,
                    cache_keys=True,
                    lifespan=self.cache_ttl,
                )
            return self._jwks_client

    def verify(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self._get_jwks_client().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            logger.warning(f"External token rejected: signing key unavailable ({e})")
            raise AuthenticationError("Invalid or expired token", cause=e) from e
        except DecodeError as e:
            logger.warning("External token rejected: malformed header")
            raise AuthenticationError("Invalid or expired token", cause=e) from e

        try:
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"]},
            )
        except ExpiredSignatureError as e:
            reason = "expired_token"
            cause: InvalidTokenError = e
        except InvalidSignatureError as e:
            reason = "invalid_signature"
            cause = e
        except InvalidIssuerError as e:
            reason = "invalid_issuer"
            cause = e
        except InvalidAudienceError as e:
            reason = "invalid_audience"
            cause = e
        except InvalidTokenError as e:
            reason = "invalid_token"
            cause = e

        logger.warning(f"External token rejected: {reason}")
        raise AuthenticationError("Invalid or expired token", cause=cause) from cause


class ExternalJwtAuthenticator:
    """Maps a verified external token to a local user, creating it on first sight."""

    def __init__(self, verifier: TokenVerifier, user_service: UserService | None = None):
        self.verifier = verifier
        self.user_service = user_service or UserService()

    @classmethod
    def from_settings(cls) -> ExternalJwtAuthenticator | None:
        """Build an authenticator from settings, or None when not configured."""
        if not settings.external_jwt_enabled:
            return None
        return cls(
            JwksTokenVerifier(
                domain=settings.AUTH0_DOMAIN,
                audience=settings.AUTH0_AUDIENCE,
                cache_ttl=settings.JWKS_CACHE_TTL,
            )
        )

    def authenticate(self, token: str) -> UserRef:
        """Verify the token and upsert the user it names.

        Raises:
            AuthenticationError: If verification fails or the token has no email.
        """
        claims = self.verifier.verify(token)
        user = self.user_service.upsert_external(
            subject=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
        )
        return UserRef(
            user_id=user["user_id"],
            email=user["email"],
            name=user["name"],
            is_admin=user["is_admin"],
        )
