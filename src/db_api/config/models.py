"""Pydantic models for database configuration."""

from typing import Literal

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"


class PoolSettings(BaseModel):
    """Connection pool bounds from the ``[pool]`` section of db.toml.

    ``pool_size`` is the number of idle connections kept; the pool opens at
    most ``pool_size + max_overflow`` connections.
    """

    pool_size: int = Field(default=3, ge=1)
    max_overflow: int = Field(default=7, ge=0)
    pool_recycle: int = Field(default=180, ge=1)  # seconds
    pool_pre_ping: bool = True
    connect_timeout: int = Field(default=5, ge=1)  # seconds


class SchemaSettings(BaseModel):
    """Introspection settings from the ``[schema]`` section of db.toml."""

    name: str = "public"
    exclude: list[str] | None = None  # None -> SchemaIntrospector defaults
    link_strategy: Literal["foreign_key", "naming"] = "foreign_key"


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    pool: PoolSettings = Field(default_factory=PoolSettings)
    schema_settings: SchemaSettings = Field(default_factory=SchemaSettings)
