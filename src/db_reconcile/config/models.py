"""Pydantic models for database configuration."""

from pydantic import BaseModel


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml.

    ``schema_name`` and ``transactional`` come from the ``[planner]``
    table and apply to every profile.
    """

    profiles: dict[str, DatabaseProfile]
    schema_name: str = "public"
    transactional: bool = False
