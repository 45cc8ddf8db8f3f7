"""
User service for email/password authentication.

Handles first-user signup, invite acceptance, password login and changes, and
user records for principals authenticated by an external token issuer.
Passwords are hashed using bcrypt.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TypedDict

import bcrypt
import psycopg
from loguru import logger

from gatekit_core.config import settings
from gatekit_core.runtime.errors import AuthenticationError, BadRequestError, ConflictError


class UserRecord(TypedDict):
    """User record from database."""

    user_id: str
    email: str
    name: str | None
    is_admin: bool


class UserService:
    """Service for user authentication and management."""

    BCRYPT_COST = 12
    MIN_PASSWORD_LENGTH = 8

    def __init__(self, dsn: str | None = None):
        """Initialize the user service.

        Args:
            dsn: PostgreSQL connection string. Defaults to settings.POSTGRES_DSN.
        """
        self.dsn = dsn or settings.POSTGRES_DSN

    def _hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Bcrypt hash string.
        """
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(self.BCRYPT_COST)).decode()

    def _verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash.

        Args:
            password: Plain text password.
            password_hash: Stored bcrypt hash.

        Returns:
            True if password matches.
        """
        return bcrypt.checkpw(password.encode(), password_hash.encode())

    def signup(self, email: str, password: str, name: str | None = None) -> UserRecord:
        """Create the first local user as a global admin.

        Once any password-bearing user exists, self-service signup is closed.

        Raises:
            BadRequestError: If the password is too short.
            ConflictError: If signup is closed or the email is taken.
        """
        if len(password) < self.MIN_PASSWORD_LENGTH:
            raise BadRequestError(
                f"Password must be at least {self.MIN_PASSWORD_LENGTH} characters"
            )

        user_id = str(uuid.uuid4())
        password_hash = self._hash_password(password)

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM users WHERE password_hash IS NOT NULL")
                if cur.fetchone()[0] > 0:
                    raise ConflictError(
                        "Signup is disabled. Please contact your administrator for an invitation."
                    )

                cur.execute("SELECT 1 FROM users WHERE email = %s", (email,))
                if cur.fetchone():
                    raise ConflictError("User with this email already exists")

                cur.execute(
                    """
                    INSERT INTO users (id, email, name, password_hash, is_admin, updated_at)
                    VALUES (%s, %s, %s, %s, TRUE, NOW())
                    """,
                    (user_id, email, name, password_hash),
                )

        logger.info(f"First admin user {user_id} created")
        return UserRecord(user_id=user_id, email=email, name=name, is_admin=True)

    def authenticate(self, email: str, password: str) -> UserRecord:
        """Authenticate a user by email and password.

        Raises:
            AuthenticationError: If the user is unknown, has no local password,
                or the password does not match.
        """
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id, email, name, password_hash, is_admin FROM users WHERE email = %s",
                    (email,),
                )
                row = cur.fetchone()

        if not row or not row[3]:
            raise AuthenticationError("Invalid credentials")

        user_id, db_email, name, password_hash, is_admin = row
        if not self._verify_password(password, password_hash):
            raise AuthenticationError("Invalid credentials")

        return UserRecord(user_id=str(user_id), email=db_email, name=name, is_admin=is_admin)

    def get_by_id(self, user_id: str) -> UserRecord | None:
        """Get a user by their ID.

        Args:
            user_id: The user's id.

        Returns:
            UserRecord if found, None otherwise.
        """
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id, email, name, is_admin FROM users WHERE id = %s",
                    (user_id,),
                )
                row = cur.fetchone()

        if not row:
            return None
        return UserRecord(user_id=str(row[0]), email=row[1], name=row[2], is_admin=row[3])

    def get_by_email(self, email: str) -> UserRecord | None:
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id, email, name, is_admin FROM users WHERE email = %s",
                    (email,),
                )
                row = cur.fetchone()

        if not row:
            return None
        return UserRecord(user_id=str(row[0]), email=row[1], name=row[2], is_admin=row[3])

    def upsert_external(self, subject: str, email: str | None, name: str | None = None) -> UserRecord:
        """Create or refresh the user row for an externally issued token.

        Raises:
            AuthenticationError: If the token carries no email.
        """
        if not email:
            raise AuthenticationError("Email is required for externally authenticated users")

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO users (id, auth0_id, email, name, updated_at)
                    VALUES (%s, %s, %s, %s, NOW())
                    ON CONFLICT (auth0_id)
                    DO UPDATE SET email = EXCLUDED.email, name = EXCLUDED.name, updated_at = NOW()
                    RETURNING id, email, name, is_admin
                    """,
                    (str(uuid.uuid4()), subject, email, name),
                )
                row = cur.fetchone()

        return UserRecord(user_id=str(row[0]), email=row[1], name=row[2], is_admin=row[3])

    def check_password_strength(self, password: str) -> None:
        """Rules for invited users and password changes.

        Raises:
            BadRequestError: If the password is too short or lacks an uppercase
                letter or a digit.
        """
        if len(password) < self.MIN_PASSWORD_LENGTH:
            raise BadRequestError(
                f"Password must be at least {self.MIN_PASSWORD_LENGTH} characters long"
            )
        if not any(c.isupper() for c in password):
            raise BadRequestError("Password must contain at least one uppercase letter")
        if not any(c.isdigit() for c in password):
            raise BadRequestError("Password must contain at least one number")

    def accept_invite(self, token: str, name: str, password: str) -> UserRecord:
        """Create the invited user and add them to the inviting project as member.

        The invite is consumed in the same transaction. An expired invite is
        deleted before the error is raised.

        Raises:
            AuthenticationError: If the token is unknown or expired.
            ConflictError: If a user with the invited email already exists.
        """
        self.check_password_strength(password)
        user_id = str(uuid.uuid4())

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT email, project_id, expires_at FROM invites WHERE token = %s",
                    (token,),
                )
                invite = cur.fetchone()
                if not invite:
                    raise AuthenticationError("Invalid or expired invite")

                email, project_id, expires_at = invite
                if expires_at.tzinfo is None:
                    expires_at = expires_at.replace(tzinfo=timezone.utc)
                if expires_at < datetime.now(timezone.utc):
                    cur.execute("DELETE FROM invites WHERE token = %s", (token,))
                    conn.commit()
                    raise AuthenticationError("Invite has expired")

                cur.execute("SELECT 1 FROM users WHERE email = %s", (email,))
                if cur.fetchone():
                    raise ConflictError("User with this email already exists")

                cur.execute(
                    """
                    INSERT INTO users (id, email, name, password_hash, is_admin, updated_at)
                    VALUES (%s, %s, %s, %s, FALSE, NOW())
                    """,
                    (user_id, email, name, self._hash_password(password)),
                )
                cur.execute(
                    """
                    INSERT INTO project_members (id, project_id, user_id, role, updated_at)
                    VALUES (%s, %s, %s, 'member', NOW())
                    """,
                    (str(uuid.uuid4()), project_id, user_id),
                )
                cur.execute("DELETE FROM invites WHERE token = %s", (token,))

        logger.info(f"Invite accepted: user {user_id} joined project {project_id}")
        return UserRecord(user_id=user_id, email=email, name=name, is_admin=False)

    def update_password(self, user_id: str, current_password: str, new_password: str) -> dict[str, str]:
        """Change a local user's password.

        Raises:
            AuthenticationError: If the user has no local password or the current
                password is wrong.
            BadRequestError: If the new password is weak or unchanged.
        """
        self.check_password_strength(new_password)

        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT password_hash FROM users WHERE id = %s", (user_id,))
                row = cur.fetchone()
                if not row or not row[0]:
                    raise AuthenticationError("User not found or no password set")

                if not self._verify_password(current_password, row[0]):
                    raise AuthenticationError("Current password is incorrect")
                if self._verify_password(new_password, row[0]):
                    raise BadRequestError("New password must be different from current password")

                cur.execute(
                    "UPDATE users SET password_hash = %s, updated_at = NOW() WHERE id = %s",
                    (self._hash_password(new_password), user_id),
                )

        logger.info(f"Password updated for user {user_id}")
        return {"message": "Password updated successfully"}

    def update_profile(self, user_id: str, name: str | None) -> UserRecord:
        """Update the user's display name.

        Raises:
            AuthenticationError: If the user no longer exists.
        """
        with psycopg.connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE users SET name = COALESCE(%s, name), updated_at = NOW()
                    WHERE id = %s
                    RETURNING id, email, name, is_admin
                    """,
                    (name, user_id),
                )
                row = cur.fetchone()

        if not row:
            raise AuthenticationError("User not found")
        return UserRecord(user_id=str(row[0]), email=row[1], name=row[2], is_admin=row[3])
