"""Import database factory.

Supports two configuration modes:
1. Profile mode (db.toml): named target databases, selected explicitly or
   via the ``{prefix}DB_PROFILE`` environment variable
2. Direct mode: a database URL passed by the caller, no config file needed
"""

import os
from pathlib import Path
from urllib.parse import quote

from db_importer.adapters.sql import AsyncSqlImportDatabase
from db_importer.config.loader import load_importer_config
from db_importer.config.models import DatabaseProfile
from db_importer.errors import ProfileNotFoundError


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the environment variable, e.g. ``"CMS_"``
            reads ``CMS_DB_PROFILE``.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Pass --profile <name> or set {env_var}=<name>."
    )


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_import_database(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> AsyncSqlImportDatabase:
    """Create an import target from a URL or a db.toml profile.

    Args:
        profile_name: Profile name from db.toml.  If None, uses the
            ``{env_prefix}DB_PROFILE`` environment variable.
        database_url: Direct database URL.  Takes precedence over profiles;
            db.toml is not read.
        env_prefix: Prefix for the profile environment variable.
        config_path: Path to db.toml (default: ``./db.toml``).

    Returns:
        AsyncSqlImportDatabase for the resolved URL

    Raises:
        ProfileNotFoundError: If no profile is configured, or the profile
            is not defined in db.toml
        FileNotFoundError: If db.toml doesn't exist

    Example:
        >>> database = get_import_database("staging")
        >>> result = await DatabaseImporter(database).import_from_file("export.json")
    """
    if database_url:
        return AsyncSqlImportDatabase(database_url)

    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)

    config = load_importer_config(config_path)
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml. Available: {available}"
        )

    return AsyncSqlImportDatabase(resolve_url(config.profiles[profile_name]))
