"""
Settings for the API, the worker and the engine.

Read once from the environment (and .env) into `settings`. Engine values
below "Selection" and "Health score" are product parameters: changing them
alters behavior but not any invariant the engine relies on.
"""
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

ASYNC_DRIVERS = ("postgresql+asyncpg", "sqlite+aiosqlite")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Database. A full DATABASE_URL wins over the POSTGRES_* parts.
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="daily_actions")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)
    DB_POOL_SIZE: int = Field(default=20, ge=1)
    DB_MAX_OVERFLOW: int = Field(default=10, ge=0)
    DB_POOL_TIMEOUT: int = Field(default=30, ge=1)
    DB_POOL_RECYCLE: int = Field(default=3600)  # seconds

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: Literal["json", "text"] = Field(default="json")

    # Worker
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Runtime
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    CORS_ORIGINS: Optional[str] = Field(default=None)  # comma-separated
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1, ge=0, le=1)

    # Selection
    RECENCY_WINDOW_DAYS: int = Field(default=30, ge=0)
    ASSIGNMENT_BATCH_CONCURRENCY: int = Field(default=8, ge=1)
    # Seed for batch runs; None means a fresh generator per run.
    SELECTION_RANDOM_SEED: Optional[int] = Field(default=None)

    # "Show me more like this"
    SHOW_MORE_INCREMENT: float = Field(default=0.5, gt=0)
    PREFERENCE_WEIGHT_MAX: float = Field(default=5.0, gt=0)

    # Health score
    HEALTH_BASELINE_DEFAULT: float = Field(default=50.0, ge=0, le=100)
    HEALTH_DAILY_ACTION_POINTS: float = Field(default=0.5, ge=0)
    HEALTH_DAILY_POINTS_CAP: float = Field(default=1.0, ge=0)
    HEALTH_WEEKLY_ACTION_POINTS: float = Field(default=2.0, ge=0)
    HEALTH_WEEKLY_POINTS_CAP: float = Field(default=2.0, ge=0)
    HEALTH_EVENT_BONUS: float = Field(default=3.0, ge=0)
    HEALTH_DECAY_PER_MISSED_DAY: float = Field(default=0.5, ge=0)
    HEALTH_WEEKLY_DECAY_CAP: float = Field(default=3.5, ge=0)

    # Multi-day programs
    PROGRAM_DEFAULT_DURATION_DAYS: int = Field(default=7, ge=1)

    @field_validator("DATABASE_URL")
    @classmethod
    def require_async_driver(cls, value: Optional[str]) -> Optional[str]:
        """Every store call is awaited; a sync driver URL would fail on first use."""
        if value and not value.startswith(ASYNC_DRIVERS):
            raise ValueError(f"DATABASE_URL must use an async driver ({', '.join(ASYNC_DRIVERS)})")
        return value


settings = Settings()
