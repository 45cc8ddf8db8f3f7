"""
Authentication resolver.

Chooses an authentication strategy from request headers and produces the
request's AuthContext. The decision order is strict, first match wins:

1. Public operation: allowed without a context; no store access.
2. ``x-api-key`` present: API key validation, then scope enforcement. An invalid
   key fails immediately even if a Bearer token is also present.
3. ``Authorization: Bearer`` present: local token, then external-issuer token.
4. Otherwise: authentication required.
"""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from gatekit_core.auth.api_key_service import ApiKeyService
from gatekit_core.auth.external_jwt import ExternalJwtAuthenticator
from gatekit_core.auth.jwt_service import JwtService
from gatekit_core.auth.policy import OperationPolicy
from gatekit_core.auth.scopes import has_required_scopes
from gatekit_core.domain.auth import AuthContext, UserRef
from gatekit_core.runtime.errors import AuthenticationError, ForbiddenError

API_KEY_HEADER = "x-api-key"
AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "bearer "


class AuthResolver:
    """Resolves request credentials into an AuthContext."""

    def __init__(
        self,
        api_key_service: ApiKeyService,
        local_jwt: JwtService | None = None,
        external_jwt: ExternalJwtAuthenticator | None = None,
    ):
        """Initialize the resolver.

        Args:
            api_key_service: Validates API keys.
            local_jwt: Validates locally issued tokens. None disables the local path.
            external_jwt: Validates external-issuer tokens. None disables that path.
        """
        self.api_key_service = api_key_service
        self.local_jwt = local_jwt
        self.external_jwt = external_jwt

    @property
    def jwt_configured(self) -> bool:
        return self.local_jwt is not None or self.external_jwt is not None

    def resolve(
        self,
        headers: Mapping[str, str],
        policy: OperationPolicy,
        request_id: str | None = None,
    ) -> AuthContext | None:
        """Authenticate a request for the given operation.

        Returns:
            The AuthContext, or None for public operations.

        Raises:
            AuthenticationError: Missing or invalid credentials.
            ForbiddenError: API key lacks a required scope.
        """
        if policy.public:
            return None

        normalized = {k.lower(): v for k, v in headers.items()}

        api_key = normalized.get(API_KEY_HEADER)
        if api_key:
            return self._resolve_api_key(api_key, policy, request_id)

        authorization = normalized.get(AUTHORIZATION_HEADER, "")
        if authorization.lower().startswith(BEARER_PREFIX):
            token = authorization[len(BEARER_PREFIX) :].strip()
            return self._resolve_bearer(token, policy, request_id)

        logger.warning(f"Missing credentials for {policy.name}")
        raise AuthenticationError(
            "Authentication required. Provide either an API key or Bearer token."
        )

    def _resolve_api_key(
        self,
        api_key: str,
        policy: OperationPolicy,
        request_id: str | None,
    ) -> AuthContext:
        record = self.api_key_service.validate_key(api_key)
        if record is None:
            logger.warning(f"Invalid API key for {policy.name}")
            raise AuthenticationError("Invalid API key")

        context = AuthContext.for_api_key(
            project=record["project"],
            key_id=record["key_id"],
            key_name=record["name"],
            scopes=record["scopes"],
            request_id=request_id,
        )

        if not has_required_scopes(policy.required_scopes, context.scopes):
            logger.warning(
                f"API key {context.api_key_id} lacks scopes {list(policy.required_scopes)} "
                f"for {policy.name}"
            )
            raise ForbiddenError("Insufficient permissions")

        logger.debug(f"Authenticated {context.principal_label} for {policy.name}")
        return context

    def _resolve_bearer(
        self,
        token: str,
        policy: OperationPolicy,
        request_id: str | None,
    ) -> AuthContext:
        if not self.jwt_configured:
            raise AuthenticationError(
                "JWT authentication is not configured. Please use API key authentication."
            )

        user = self._try_local(token)
        if user is None:
            user = self._try_external(token)
        if user is None:
            logger.warning(f"Invalid Bearer token for {policy.name}")
            raise AuthenticationError("Invalid or expired token")

        context = AuthContext.for_user(user, request_id=request_id)
        logger.debug(f"Authenticated {context.principal_label} for {policy.name}")
        return context

    def _try_local(self, token: str) -> UserRef | None:
        """Return the local user, or None if the token is not a valid local token.

        Only token-validity failures fall through; ForbiddenError and store
        errors propagate.
        """
        if self.local_jwt is None:
            return None
        try:
            return self.local_jwt.authenticate(token)
        except AuthenticationError as e:
            logger.debug(f"Local token rejected: {e.message_safe}")
            return None

    def _try_external(self, token: str) -> UserRef | None:
        if self.external_jwt is None:
            return None
        try:
            return self.external_jwt.authenticate(token)
        except AuthenticationError as e:
            logger.debug(f"External token rejected: {e.message_safe}")
            return None
