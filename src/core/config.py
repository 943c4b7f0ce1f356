"""Application configuration via Pydantic settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration object loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Clinic Operations API"
    debug: bool = False
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    database_url: str = Field(..., alias="DATABASE_URL")
    jwt_secret: str = Field(..., alias="JWT_SECRET")
    jwt_algorithm: str = "HS256"
    jwt_expires_in_minutes: int = Field(60 * 24, alias="JWT_EXPIRES_IN")

    default_timezone: str = Field("America/Argentina/Buenos_Aires", alias="DEFAULT_TIMEZONE")

    # Row-lock wait on a professional balance before the request is failed as retryable.
    lock_timeout_ms: int = Field(5000, alias="LOCK_TIMEOUT_MS")

    slot_grid_start: str = Field("09:00", alias="SLOT_GRID_START")
    slot_grid_count: int = Field(9, alias="SLOT_GRID_COUNT")
    slot_minutes: int = Field(60, alias="SLOT_MINUTES")


@lru_cache(1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings = get_settings()
