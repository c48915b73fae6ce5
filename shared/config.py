"""
Shared Configuration Module

Centralized configuration management for the room booking services using Pydantic Settings.
Supports environment variables, .env files, and runtime overrides.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False, description="Enable debug mode")

    # Database - PostgreSQL
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "room_booking"
    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy async URL, overrides the postgres_* parts when set",
    )
    db_pool_size: int = 20
    db_max_overflow: int = 40

    @property
    def async_database_url(self) -> str:
        """Construct async database URL."""
        if self.database_url:
            return self.database_url
        return f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Security
    secret_key: str = Field(
        default="dev-secret-key-change-in-production-min-32-chars",
        min_length=32,
    )
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24

    # Accounts
    email_domain: str = Field(
        default="hcmut.edu.vn",
        description="Institutional domain every registered email must belong to",
    )
    admin_emails: list[str] = Field(
        default_factory=list,
        description="Emails granted the ADMIN role when they register",
    )

    # API Configuration
    api_v1_prefix: str = "/api/v1"

    # Service Ports (HTTP)
    user_service_port: int = 8001
    booking_service_port: int = 8005

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "text"] = "json"

    # CORS
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    cors_allow_credentials: bool = True

    @property
    def expose_tracebacks(self) -> bool:
        """Whether error responses may carry internal detail."""
        return self.debug and self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()


# Convenience exports
settings = get_settings()
