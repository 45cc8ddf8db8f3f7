"""
JWT service for locally issued access tokens.

Tokens are HS256-signed with JWT_SECRET and carry the user id, email and global
admin flag. Validation also confirms the user still exists.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TypedDict

import jwt
from loguru import logger

from gatekit_core.auth.user_service import UserService
from gatekit_core.config import settings
from gatekit_core.domain.auth import UserRef
from gatekit_core.runtime.errors import AuthenticationError


class TokenPayload(TypedDict):
    """Decoded JWT payload."""

    sub: str  # user_id
    email: str
    is_admin: bool
    iat: int
    exp: int


class JwtService:
    """Service for JWT token generation and validation."""

    ALGORITHM = "HS256"

    def __init__(
        self,
        secret: str | None = None,
        user_service: UserService | None = None,
        access_ttl: int | None = None,
    ):
        """Initialize the JWT service.

        Args:
            secret: JWT signing secret. Defaults to settings.JWT_SECRET.
            user_service: Used to confirm token subjects still exist.
            access_ttl: Token lifetime in seconds. Defaults to settings.JWT_ACCESS_TTL.
        """
        self.secret = secret or settings.JWT_SECRET
        self.user_service = user_service or UserService()
        self.access_ttl = access_ttl or settings.JWT_ACCESS_TTL

        if not self.secret:
            raise ValueError("JWT_SECRET must be configured")

    def create_access_token(self, user_id: str, email: str, is_admin: bool = False) -> str:
        """Create a signed access token.

        Returns:
            Encoded JWT string.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "is_admin": is_admin,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.access_ttl)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.ALGORITHM)

    def verify_access_token(self, token: str) -> TokenPayload | None:
        """Verify and decode an access token.

        Args:
            token: The JWT string.

        Returns:
            Decoded payload if valid, None otherwise.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
            return TokenPayload(
                sub=payload["sub"],
                email=payload.get("email", ""),
                is_admin=bool(payload.get("is_admin", False)),
                iat=payload.get("iat", 0),
                exp=payload["exp"],
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Local JWT expired")
            return None
        except jwt.InvalidTokenError:
            return None

    def authenticate(self, token: str) -> UserRef:
        """Resolve a local token to the user it was issued for.

        Raises:
            AuthenticationError: If the token is invalid or the user no longer exists.
        """
        payload = self.verify_access_token(token)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")

        user = self.user_service.get_by_id(payload["sub"])
        if user is None:
            raise AuthenticationError("User not found")

        return UserRef(
            user_id=user["user_id"],
            email=user["email"],
            name=user["name"],
            is_admin=user["is_admin"],
        )
