"""PostgreSQL connection helpers.

Usage:
    from db_reconcile.adapters import create_engine_pooled
"""

from db_reconcile.adapters.postgres import (
    create_engine_pooled,
    to_libpq_url,
    to_sqlalchemy_url,
    with_connect_timeout,
)

__all__ = [
    "create_engine_pooled",
    "to_libpq_url",
    "to_sqlalchemy_url",
    "with_connect_timeout",
]
