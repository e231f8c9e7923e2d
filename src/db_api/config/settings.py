"""Environment settings for db-api."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings read from ``DB_API_*`` environment variables.

    Separation of concerns:
    - Settings: which database to use (URL or profile name) and log level
    - db.toml: profile definitions, pool bounds, introspection options
    """

    model_config = SettingsConfigDict(env_prefix="DB_API_", extra="ignore")

    database_url: str | None = None
    profile: str | None = None
    config_file: Path | None = None
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
