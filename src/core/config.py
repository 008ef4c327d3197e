"""Application configuration, read from environment variables (or a .env file) via pydantic-settings."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FOUND_MESSAGE = "@everyone %BOSS% is up on layer %LAYER%!"
DEFAULT_RESPAWN_MESSAGE = "%BOSS% will respawn soon on layer %LAYER%."

ONE_HOUR = 60 * 60


class Settings(BaseSettings):
    """Tracker settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="BOSS_TRACKER_", case_sensitive=False
    )

    # Database
    database_url: str = "sqlite:///boss_tracker.db"
    database_echo: bool = False

    # Reconciliation loop, in seconds
    reconcile_interval_seconds: float = ONE_HOUR

    # Messages for newly registered tenants
    default_found_message: str = DEFAULT_FOUND_MESSAGE
    default_respawn_message: str = DEFAULT_RESPAWN_MESSAGE

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("reconcile_interval_seconds")
    @classmethod
    def validate_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("reconcile_interval_seconds must be positive.")
        return value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        if value.lower() not in ("json", "text"):
            raise ValueError(f"log_format must be 'json' or 'text', got {value!r}.")
        return value.lower()


@lru_cache
def get_settings() -> Settings:
    return Settings()
