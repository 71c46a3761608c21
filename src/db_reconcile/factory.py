"""Database profile resolution.

Turns a profile name (explicit, or from the ``DB_PROFILE`` environment
variable) into a connection URL using the profiles in db.toml.
"""

import os
from urllib.parse import quote

from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig, DatabaseProfile


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured or it does not exist."""

    pass


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the variable name, e.g. ``"APP_"`` reads
            ``APP_DB_PROFILE``.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If the variable is not set
    """
    variable = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(variable)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Pass --profile <name> or set {variable}=<name>"
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


def get_database_url(
    profile_name: str | None = None,
    config: DatabaseConfig | None = None,
    env_prefix: str = "",
) -> str:
    """Resolve the connection URL for a profile.

    Args:
        profile_name: Profile name from db.toml.  If None, uses the
            ``DB_PROFILE`` environment variable.
        config: Loaded configuration.  If None, loads ./db.toml.
        env_prefix: Prefix for environment variable lookup.

    Returns:
        Connection URL for the profile

    Raises:
        ProfileNotFoundError: If no profile is configured or it is not in db.toml
        FileNotFoundError: If db.toml does not exist
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix=env_prefix)
    if config is None:
        config = load_db_config()

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml. Available: {available}"
        )

    return resolve_url(config.profiles[profile_name])
