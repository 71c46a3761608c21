"""db-reconcile: Declarative table reconciliation for PostgreSQL.

Compares a declared table structure against the live table and plans the
DDL needed to converge them: columns, primary key, foreign keys and
indexes.  Plans are only executed when explicitly applied.

Usage:
    from db_reconcile import plan_table, apply_statements, load_table_spec

    spec = load_table_spec("users.yaml")
    statements = plan_table(database_url, spec.name, spec)
    apply_statements(database_url, statements)
"""

__version__ = "0.1.0"

# Errors
from db_reconcile.errors import (
    ConnectError,
    ExecutionError,
    PlanningError,
    ProbeError,
    ReconcileError,
)

# Config
from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig, DatabaseProfile

# Factory
from db_reconcile.factory import ProfileNotFoundError, get_database_url, resolve_url

# Schema
from db_reconcile.schema.executor import apply_statements
from db_reconcile.schema.loader import load_table_spec
from db_reconcile.schema.models import (
    ColumnSpec,
    ForeignKey,
    Index,
    KeyConstraint,
    LiveTableState,
    TableSpec,
)
from db_reconcile.schema.planner import build_table_plan, plan_table

__all__ = [
    # Errors
    "ReconcileError",
    "ConnectError",
    "ProbeError",
    "PlanningError",
    "ExecutionError",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_database_url",
    "resolve_url",
    "ProfileNotFoundError",
    # Schema
    "plan_table",
    "build_table_plan",
    "apply_statements",
    "load_table_spec",
    "TableSpec",
    "ColumnSpec",
    "KeyConstraint",
    "ForeignKey",
    "Index",
    "LiveTableState",
]
