import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is for local development only. Set DATABASE_URL to a PostgreSQL
    connection string in any deployed environment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "ride_planner.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(
        f"Using SQLite database (LOCAL DEV ONLY): {db_url}. "
        "Set DATABASE_URL environment variable to use PostgreSQL in production."
    )
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="Path of a rotating log file; console only when unset",
    )
    log_rotation: str = Field(default="10 MB", validation_alias="LOG_ROTATION")
    log_retention: str = Field(default="7 days", validation_alias="LOG_RETENTION")
    auth_secret_key: str = Field(default="", validation_alias="AUTH_SECRET_KEY")
    auth_algorithm: str = Field(default="HS256", validation_alias="AUTH_ALGORITHM")
    auth_token_expire_days: int = Field(default=30, validation_alias="AUTH_TOKEN_EXPIRE_DAYS")
    peloton_api_base_url: str = Field(
        default="https://api.onepeloton.com",
        validation_alias="PELOTON_API_BASE_URL",
        description="Base URL of the Peloton API",
    )
    peloton_request_timeout: float = Field(
        default=15.0,
        validation_alias="PELOTON_REQUEST_TIMEOUT",
        description="Timeout in seconds for a single Peloton API request",
    )
    completion_sync_limit: int = Field(
        default=20,
        validation_alias="COMPLETION_SYNC_LIMIT",
        description="How many recent Peloton workouts a completion sync looks at",
    )
    default_timezone: str = Field(
        default="UTC",
        validation_alias="DEFAULT_TIMEZONE",
        description="Timezone used when neither the profile nor the request supplies one",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("completion_sync_limit")
    @classmethod
    def validate_completion_sync_limit(cls, value: int) -> int:
        """Keep the sync window positive; Peloton rejects a zero page size."""
        if value < 1:
            logger.warning(f"Invalid COMPLETION_SYNC_LIMIT '{value}'. Defaulting to 20.")
            return 20
        return value

    @field_validator("auth_secret_key")
    @classmethod
    def validate_auth_secret_key(cls, value: str) -> str:
        """Warn when JWT signing is not configured."""
        if not value:
            logger.warning(
                "AUTH_SECRET_KEY is not set. Authenticated endpoints will reject every token. "
                "Set it in .env file or environment variables."
            )
        return value


settings = Settings()
