# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
provisioning service. Settings are loaded from environment variables
with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.provisioning.max_username_attempts)
    10000
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DirectoryDatabaseSettings(BaseSettings):
    """Directory database configuration.

    The directory database stores the teacher and student records, each
    linked to an identity in the external identity provider.

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
        env_prefix="DIRECTORY_DB_",
        extra="ignore",
    )

    user: str = "edusynapse"
    password: SecretStr = SecretStr("edusynapse_directory_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "edusynapse_directory"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class IdentityProviderSettings(BaseSettings):
    """External identity provider configuration.

    The identity provider owns login credentials. Accounts are created
    with a username and a temporary password only (no email).

    Attributes:
        base_url: Base URL of the identity provider REST API.
        secret_key: Backend secret key used as bearer credential.
        timeout: Request timeout in seconds.
        page_size: Page size used when listing existing usernames.
        max_pages: Upper bound on pages fetched by one username listing.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_PROVIDER_",
        extra="ignore",
    )

    base_url: str = "https://api.clerk.com/v1"
    secret_key: SecretStr = SecretStr("")
    timeout: float = 30.0
    page_size: int = 500
    max_pages: int = Field(default=1000, ge=1)

    @property
    def auth_headers(self) -> dict[str, str]:
        """Build authentication headers for API requests."""
        return {
            "Authorization": f"Bearer {self.secret_key.get_secret_value()}",
            "Content-Type": "application/json",
        }


class JWTSettings(BaseSettings):
    """JWT verification configuration.

    Tokens are issued by the external identity service; this service only
    checks their validity and the caller's role.

    Attributes:
        secret_key: Secret key for verifying tokens.
        algorithm: JWT signing algorithm.
        admin_role: Role code required for provisioning endpoints.
        access_token_expire_minutes: Lifetime of locally minted tokens.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    admin_role: str = "admin"
    access_token_expire_minutes: int = 30


class ProvisioningSettings(BaseSettings):
    """Account provisioning configuration.

    Attributes:
        max_username_attempts: Upper bound on collision suffixes tried before
            username generation gives up.
        min_username_length: Minimum username length accepted by the
            identity provider; shorter bases are padded with "0".
        max_concurrency: Rows provisioned at once in a batch (1 = sequential).
        external_call_timeout: Seconds allowed for each identity/directory call.
        batch_chunk_size: Rows provisioned between rate-limit pauses.
        batch_delay_seconds: Pause between chunks, keeping bulk imports under
            the identity provider rate limit (0 disables pacing).
    """

    model_config = SettingsConfigDict(
        env_prefix="PROVISIONING_",
        extra="ignore",
    )

    max_username_attempts: int = Field(default=10_000, ge=1)
    min_username_length: int = Field(default=4, ge=1)
    max_concurrency: int = Field(default=1, ge=1)
    external_call_timeout: float = Field(default=30.0, gt=0)
    batch_chunk_size: int = Field(default=10, ge=1)
    batch_delay_seconds: float = Field(default=1.0, ge=0)


class CORSSettings(BaseSettings):
    """Cross-origin access for the admin web client.

    Attributes:
        origins: Allowed origins, comma separated.
        allow_credentials: Send Access-Control-Allow-Credentials.
        allow_methods: Methods the admin client may use.
        allow_headers: Headers the admin client may send.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["GET", "POST", "OPTIONS"]
    allow_headers: list[str] = ["Authorization", "Content-Type"]

    @property
    def origins_list(self) -> list[str]:
        """Origins as a list, blanks dropped."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """Root settings for the provisioning service.

    Each section reads its own environment prefix. Obtain the process-wide
    instance through get_settings().

    Attributes:
        environment: development, staging or production.
        debug: Enables API docs and verbose logging.
        log_level: Root level for the src logger.
        directory_db: Directory database connection.
        identity_provider: Identity provider REST client.
        jwt: Access token verification.
        provisioning: Username and batch behaviour.
        cors: Cross-origin access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    directory_db: DirectoryDatabaseSettings = Field(default_factory=DirectoryDatabaseSettings)
    identity_provider: IdentityProviderSettings = Field(default_factory=IdentityProviderSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    provisioning: ProvisioningSettings = Field(default_factory=ProvisioningSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Refuse to run in production with placeholder secrets.

        Raises:
            ValueError: If the JWT secret is the placeholder or the identity
                provider secret is empty.
        """
        if self.environment != "production":
            return self

        if self.jwt.secret_key.get_secret_value() == "change-this-in-production":
            raise ValueError("JWT_SECRET_KEY must be set in production")
        if not self.identity_provider.secret_key.get_secret_value():
            raise ValueError("IDENTITY_PROVIDER_SECRET_KEY must be set in production")
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings loaded once per process; see clear_settings_cache()."""
    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next get_settings() rereads the env."""
    get_settings.cache_clear()
