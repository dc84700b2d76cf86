import warnings
from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Use top level .env file (one level above ./backend/)
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Schedule Core"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    DATABASE_URL: str = "sqlite:///./schedule_core.db"
    DATABASE_POOL_PRE_PING: bool = True
    DATABASE_POOL_RECYCLE: int = 3600

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        # Heroku-style URLs need the psycopg driver spelled out
        if self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace(
                "postgresql://", "postgresql+psycopg://", 1
            )
        return self.DATABASE_URL

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_sqlite(self) -> bool:
        return self.SQLALCHEMY_DATABASE_URI.startswith("sqlite")

    # Calendar Configuration
    DEFAULT_TIMEZONE: str = "UTC"
    # Per-tenant overrides, e.g. TENANT_TIMEZONES='{"acme": "Europe/Berlin"}'
    TENANT_TIMEZONES: dict[str, str] = {}
    HOLIDAY_CALENDAR: Literal["none", "us_federal"] = "none"

    # Expansion guard rails
    MAX_EXPANSION_OCCURRENCES: int = 5000
    MAX_QUERY_WINDOW_DAYS: int = 366
    CONFLICT_HORIZON_DAYS: int = 31

    @field_validator("DEFAULT_TIMEZONE")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @model_validator(mode="after")
    def _check_limits(self) -> Self:
        if self.MAX_EXPANSION_OCCURRENCES < 1:
            raise ValueError("MAX_EXPANSION_OCCURRENCES must be at least 1")
        if self.MAX_QUERY_WINDOW_DAYS < 1:
            raise ValueError("MAX_QUERY_WINDOW_DAYS must be at least 1")
        if self.CONFLICT_HORIZON_DAYS > self.MAX_QUERY_WINDOW_DAYS:
            message = (
                "CONFLICT_HORIZON_DAYS exceeds MAX_QUERY_WINDOW_DAYS, "
                "conflict checks after mutations will be clipped."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)
        return self

    # Observability Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # "json" or "console"
    LOG_SQL: bool = False
    ENABLE_METRICS: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
