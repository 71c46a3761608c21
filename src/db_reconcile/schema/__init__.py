"""Table introspection, comparison, planning and plan execution.

Provides live table introspection (``TableIntrospector``), facet
comparators, DDL planning (``plan_table``, ``build_table_plan``) and plan
execution (``apply_statements``).

Usage:
    from db_reconcile.schema import plan_table, apply_statements
    from db_reconcile.schema import TableSpec, load_table_spec
"""

from db_reconcile.schema.comparator import (
    compare_column,
    foreign_keys_equal,
    indexes_equal,
    primary_keys_equal,
    resolve_not_null,
)
from db_reconcile.schema.ddl import generate_index_name
from db_reconcile.schema.executor import apply_statements
from db_reconcile.schema.introspector import TableIntrospector
from db_reconcile.schema.loader import load_table_spec, parse_table_spec
from db_reconcile.schema.models import (
    ColumnDiff,
    ColumnSpec,
    ForeignKey,
    Index,
    KeyConstraint,
    LiveTableState,
    TableSpec,
)
from db_reconcile.schema.planner import (
    build_table_plan,
    plan_columns,
    plan_foreign_keys,
    plan_indexes,
    plan_primary_key,
    plan_table,
)

__all__ = [
    "TableIntrospector",
    "compare_column",
    "resolve_not_null",
    "primary_keys_equal",
    "foreign_keys_equal",
    "indexes_equal",
    "generate_index_name",
    "plan_table",
    "build_table_plan",
    "plan_columns",
    "plan_primary_key",
    "plan_foreign_keys",
    "plan_indexes",
    "apply_statements",
    "load_table_spec",
    "parse_table_spec",
    "ColumnDiff",
    "ColumnSpec",
    "ForeignKey",
    "Index",
    "KeyConstraint",
    "LiveTableState",
    "TableSpec",
]
