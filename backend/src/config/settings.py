"""
Application settings configuration for the event scheduler.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        EVSCHED_DB_URL: SQLAlchemy database URL
            (default: "sqlite:///./event_scheduler.db")
        EVSCHED_ENV: Environment name: development, production, test
            (default: development). Production switches to JSON file logs and
            hides internal error messages from API responses.
        EVSCHED_LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL (default: INFO)
        EVSCHED_LOG_DIR: Directory for production log files (default: logs)
        EVSCHED_CORS_ORIGINS: Comma-separated list of allowed origins
        EVSCHED_DEFAULT_TIMEZONE: Timezone assigned to profiles created without
            one (default: UTC). Must be a valid IANA identifier.
    """

    database_url: str = Field(
        default="sqlite:///./event_scheduler.db",
        validation_alias="EVSCHED_DB_URL",
        description="SQLAlchemy database URL (PostgreSQL or SQLite)"
    )

    environment: str = Field(
        default="development",
        validation_alias="EVSCHED_ENV",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="EVSCHED_LOG_LEVEL",
    )

    log_dir: str = Field(
        default="logs",
        validation_alias="EVSCHED_LOG_DIR",
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        validation_alias="EVSCHED_CORS_ORIGINS",
        description="Comma-separated list of origins allowed by CORS"
    )

    default_timezone: str = Field(
        default="UTC",
        validation_alias="EVSCHED_DEFAULT_TIMEZONE",
        description="IANA timezone used when a profile is created without one"
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        """Lower-case the environment name."""
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the log level name."""
        return v.strip().upper()

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        """Reject default timezones that zoneinfo cannot resolve."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"EVSCHED_DEFAULT_TIMEZONE is not a valid IANA timezone: {v}") from e
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")

    @property
    def cors_origins_list(self) -> List[str]:
        """Allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
