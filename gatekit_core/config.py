"""
Unified configuration for the gatekit API.

This module provides a single Settings class that consolidates all
environment variables used by the API, the auth layer and the maintenance scripts.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for .env file loading (allows running from any CWD)
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Unified settings for the gatekit services.

    Environment variables are loaded from .env file and can be overridden
    by actual environment variables.
    """

    # Service identification
    SERVICE_NAME: str = "gatekit"
    SERVICE_VERSION: str = "1.0.0"

    # PostgreSQL
    POSTGRES_DSN: str = "host=localhost port=5432 dbname=gatekit user=postgres password=postgres"

    # Local JWT (email/password users). Empty disables local token validation.
    JWT_SECRET: str = ""
    JWT_ACCESS_TTL: int = 7 * 24 * 60 * 60  # 7 days

    # External OIDC issuer (Auth0). Both values are required to enable it.
    AUTH0_DOMAIN: str = ""
    AUTH0_AUDIENCE: str = ""
    JWKS_CACHE_TTL: int = 3600

    # API keys
    API_KEY_ROLL_GRACE_HOURS: int = 24

    # Member invitations
    INVITE_TTL_HOURS: int = 24
    FRONTEND_URL: str = "http://localhost:5173"

    # Received message retention (cleanup script default)
    MESSAGE_RETENTION_DAYS: int = 30

    # Rate limiting
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:7890",
        "http://127.0.0.1:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Telemetry
    ENABLE_TELEMETRY: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: str = ""

    # App host/port
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 7890

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        extra="ignore"
    )

    @property
    def external_jwt_enabled(self) -> bool:
        """True when an external token issuer is fully configured."""
        return bool(self.AUTH0_DOMAIN and self.AUTH0_AUDIENCE)


# Global settings instance
settings = Settings()  # type: ignore
