"""Configuration management: TOML profiles, pool bounds, env settings.

Usage:
    >>> from db_api.config import load_db_config, DatabaseProfile, DatabaseConfig
    >>> from db_api.config import get_settings
"""

from db_api.config.loader import load_db_config
from db_api.config.models import (
    DatabaseConfig,
    DatabaseProfile,
    PoolSettings,
    SchemaSettings,
)
from db_api.config.settings import Settings, get_settings

__all__ = [
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "PoolSettings",
    "SchemaSettings",
    "Settings",
    "get_settings",
]
