from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables at runtime.

    These settings drive:
    - DB connection
    - Default timezone and week layout for the week view
    - Scan bounds used by occurrence expansion and conflict checks
    - Logging verbosity
    """

    APP_NAME: str = "Calendar Service"
    APP_ENV: str = Field("local", description="Environment name: local/test/dev/stage/prod")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./calendar.db",
        description="SQLAlchemy-compatible async database URL",
    )

    DEFAULT_TIMEZONE: str = Field(
        default="UTC",
        description="Timezone used when a request or an event does not supply one.",
    )
    WEEK_STARTS_ON: int = Field(
        default=0,
        ge=0,
        le=6,
        description="Weekday index the week view starts on (Sunday=0 ... Saturday=6).",
    )

    # --- Recurrence expansion bounds ---
    RECURRENCE_LOOKAROUND_DAYS: int = Field(
        default=365,
        ge=0,
        description=(
            "Number of calendar days scanned before the window start and after "
            "the window end when expanding a recurring event."
        ),
    )
    CONFLICT_PADDING_HOURS: int = Field(
        default=24,
        ge=0,
        description="Padding applied around a candidate interval when expanding recurring events for conflicts.",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR).",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
