"""Configuration management for typeb."""

import json
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    sqlite_db_path: str = Field(default="./data/typeb.db", description="Path to the SQLite database file")

    # Session Configuration
    secret_key: str = Field(default="change-me-in-production", description="Secret used to sign session tokens")
    session_ttl_seconds: int = Field(default=60 * 60 * 24 * 30, description="Session token lifetime in seconds")
    password_reset_ttl_seconds: int = Field(default=3600, description="Password reset token lifetime in seconds")
    is_production: bool = Field(default=False, description="Run with production safeguards enabled")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING, ERROR)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Family Limits
    free_max_members: int = Field(default=4, description="Member limit for free families")
    premium_max_members: int = Field(default=10, description="Member limit for premium families")

    # Points
    default_task_points: int = Field(default=10, description="Points awarded when a task carries no point value")

    # Escalation Configuration
    escalation_manager_hours: int = Field(
        default=24, description="Hours a task must be overdue before parents are notified"
    )
    quiet_hours_start: str | None = Field(default="21:00", description="Start of quiet hours (HH:MM) or None")
    quiet_hours_end: str | None = Field(default="07:00", description="End of quiet hours (HH:MM) or None")

    # Billing
    upgrade_url: str = Field(default="https://typeb.app/upgrade", description="External portal for premium upgrades")

    # Feature flag overrides, e.g. FEATURE_FLAGS='{"kill_switch_task_creation": true}'
    feature_flags: dict[str, bool] = Field(default_factory=dict, description="Feature flag overrides")

    @field_validator("feature_flags", mode="before")
    @classmethod
    def parse_feature_flags(cls, v: Any) -> Any:  # noqa: ANN401
        """Accept feature flag overrides as a JSON string."""
        if isinstance(v, str):
            return json.loads(v) if v.strip() else {}
        return v

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_SERVER_ERROR: int = 500

    # Rate Limiting
    MAX_SIGN_IN_ATTEMPTS_PER_WINDOW: int = 5
    SIGN_IN_WINDOW_SECONDS: int = 300  # 5 minutes

    # Invite Codes
    INVITE_CODE_LENGTH: int = 6
    INVITE_CODE_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    INVITE_CODE_MAX_ATTEMPTS: int = 5

    # Family Limits
    MIN_FAMILY_MEMBERS: int = 2
    MAX_FAMILY_MEMBERS: int = 20
    MAX_TASK_CATEGORIES: int = 20

    # Scheduler Configuration
    ESCALATION_CHECK_MINUTE: int = 0  # Top of every hour

    # Cache TTLs
    CACHE_TTL_LEADERBOARD_SECONDS: int = 60  # 1 minute for leaderboard cache

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100
    MAX_PER_PAGE_LIMIT: int = 500

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
