# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for LinguaDash.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from linguadash.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.dashboard.default_organization_code)
    'ANB'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Learning platform database configuration.

    The database holds organization membership, lesson scores,
    conversation logs, task completions and enrollment records.
    LinguaDash reads from it and writes only enrollment rows.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class ClerkSettings(BaseSettings):
    """Clerk identity provider configuration.

    The secret key enables user lookup and invitations through the
    Backend API. The webhook secret verifies Svix-signed events.
    The JWT key is the PEM public key used to verify session tokens
    without a network round trip.

    Attributes:
        secret_key: Clerk Backend API secret key.
        webhook_secret: Svix signing secret for the webhook endpoint.
        jwt_key: PEM public key for session token verification.
        api_url: Base URL of the Clerk Backend API.
        timeout: Request timeout in seconds.
        lookup_batch_size: Number of concurrent user lookups per batch.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLERK_",
        extra="ignore",
    )

    secret_key: SecretStr | None = None
    webhook_secret: SecretStr | None = None
    jwt_key: str | None = None
    api_url: str = "https://api.clerk.com/v1"
    timeout: float = 15.0
    lookup_batch_size: int = 10

    @property
    def is_configured(self) -> bool:
        """Check whether Backend API calls can be made."""
        return bool(self.secret_key and self.secret_key.get_secret_value())

    @property
    def auth_headers(self) -> dict[str, str]:
        """Build authentication headers for Backend API requests."""
        key = self.secret_key.get_secret_value() if self.secret_key else ""
        return {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }


class DashboardSettings(BaseSettings):
    """Teacher dashboard behaviour.

    Attributes:
        default_organization_code: Organization used when a request names none.
        course_platform_domain: Domain hosting the per-course learning platforms.
        course_platform_scheme: URL scheme of the course platforms.
        streak_course_id: Course whose task completions drive progress streaks.
    """

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        extra="ignore",
    )

    default_organization_code: str = "ANB"
    course_platform_domain: str = "thesmartlanguage.com"
    course_platform_scheme: str = "https"
    streak_course_id: str = "telc_a1"


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 2
    reload: bool = False


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        clerk: Identity provider settings.
        dashboard: Dashboard behaviour settings.
        cors: CORS settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    clerk: ClerkSettings = Field(default_factory=ClerkSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production without a webhook secret.
        """
        if self.environment == "production":
            secret = self.clerk.webhook_secret
            if secret is None or not secret.get_secret_value():
                raise ValueError(
                    "Clerk webhook secret must be set in production. "
                    "Set CLERK_WEBHOOK_SECRET environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
