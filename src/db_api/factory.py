"""DatabaseApi factory.

Supports two configuration modes:
1. Profile mode (db.toml + DB_API_PROFILE): named profiles with pool and
   introspection settings
2. URL mode (DB_API_DATABASE_URL): single database, default settings
"""

import logging
from pathlib import Path
from urllib.parse import quote

from db_api.api import DatabaseApi
from db_api.config.loader import load_db_config
from db_api.config.models import DatabaseConfig, DatabaseProfile
from db_api.config.settings import get_settings
from db_api.errors import ProfileNotFoundError
from db_api.query.links import (
    ForeignKeyLinkResolver,
    LinkResolver,
    NamingConventionLinkResolver,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name() -> str:
    """Get active profile name from the ``DB_API_PROFILE`` env var.

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    profile = get_settings().profile
    if profile:
        return profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        "Set DB_API_PROFILE=<name> (see db.toml) or DB_API_DATABASE_URL."
    )


def get_active_profile(
    config: DatabaseConfig, profile_name: str | None = None
) -> tuple[str, DatabaseProfile]:
    """Get profile name and configuration.

    Args:
        config: Loaded db.toml configuration
        profile_name: Profile to use.  Falls back to ``DB_API_PROFILE``.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile configured or not in db.toml
    """
    profile_name = profile_name or get_active_profile_name()

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {available}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def build_link_resolver(strategy: str) -> LinkResolver:
    """Map a ``[schema] link_strategy`` value to a resolver."""
    if strategy == "foreign_key":
        return ForeignKeyLinkResolver()
    if strategy == "naming":
        return NamingConventionLinkResolver()
    raise ValueError(f"Unknown link strategy '{strategy}'")


# ============================================================================
# DatabaseApi Factory
# ============================================================================


async def get_api(
    profile_name: str | None = None,
    database_url: str | None = None,
    config_path: Path | None = None,
) -> DatabaseApi:
    """Connect and introspect, returning a ready ``DatabaseApi``.

    Resolution order:

    1. *database_url* argument (default settings)
    2. *profile_name* argument, or ``DB_API_PROFILE``, looked up in db.toml
    3. ``DB_API_DATABASE_URL`` (default settings)

    Each call creates a new ``DatabaseApi`` with its own pool.

    Raises:
        ProfileNotFoundError: If nothing is configured
        DatabaseConnectionError: If the database cannot be reached
        IntrospectionError: If the schema cannot be read

    Example:
        >>> api = await get_api(profile_name="local")
        >>> rows = await api.select("users", limit=10)
    """
    if database_url:
        return await DatabaseApi.connect(database_url)

    settings = get_settings()
    config_path = config_path or settings.config_file

    if profile_name or settings.profile:
        config = load_db_config(config_path)
        name, profile = get_active_profile(config, profile_name)
        schema = config.schema_settings
        logger.info("connecting with profile '%s'", name)
        return await DatabaseApi.connect(
            resolve_url(profile),
            schema_name=schema.name,
            excluded_tables=set(schema.exclude) if schema.exclude is not None else None,
            pool=config.pool,
            link_resolver=build_link_resolver(schema.link_strategy),
        )

    if settings.database_url:
        return await DatabaseApi.connect(settings.database_url)

    raise ProfileNotFoundError(
        "No database configuration found.\n"
        "Either:\n"
        "  1. Create db.toml and set DB_API_PROFILE=<name>\n"
        "  2. Set DB_API_DATABASE_URL"
    )
