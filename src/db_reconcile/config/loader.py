"""Load database profiles and planner settings from db.toml."""

import tomllib
from pathlib import Path

from db_reconcile.config.models import DatabaseConfig, DatabaseProfile


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ./db.toml)

    Returns:
        DatabaseConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid

    Example:
        config = load_db_config(Path("db.toml"))
        profile = config.profiles["local"]
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Copy db.toml.example to db.toml and configure your profiles."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path.name}: {e}") from e

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    # Parse planner settings
    planner_settings = data.get("planner", {})

    return DatabaseConfig(
        profiles=profiles,
        schema_name=planner_settings.get("schema", "public"),
        transactional=planner_settings.get("transactional", False),
    )
