"""Table reconciliation planning.

Diffs a desired ``TableSpec`` against the live table and produces the
ordered list of DDL statements that turns one into the other.  Nothing
is executed here; see ``db_reconcile.schema.executor`` for that.

The top-level case is decided once per call:

1. Table absent and marked deleted -> no statements
2. Table present and marked deleted -> ``DROP TABLE``
3. Table absent -> ``CREATE TABLE`` (plus any non-unique indexes)
4. Table present -> column, primary key, foreign key and index
   statements, in that order

Columns come first so constraints and indexes can reference them, the
primary key is settled before foreign keys that may depend on it, and
indexes are last since they can always be rebuilt on their own.

Columns present in the database but absent from the desired spec are
never dropped.

Usage:
    from db_reconcile.schema.planner import plan_table

    statements = plan_table(database_url, "users", table_spec)
    for statement in statements:
        print(statement)
"""

import logging

from db_reconcile.errors import PlanningError
from db_reconcile.schema import ddl
from db_reconcile.schema.comparator import (
    compare_column,
    foreign_keys_equal,
    indexes_equal,
    primary_keys_equal,
    resolve_not_null,
)
from db_reconcile.schema.introspector import TableIntrospector
from db_reconcile.schema.models import ColumnDiff, ForeignKey, Index, KeyConstraint, LiveTableState, TableSpec

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Column facet
# ------------------------------------------------------------------


def _alter_column_statements(table_name: str, diff: ColumnDiff) -> list[str]:
    statements = []
    if diff.type_changed:
        statements.append(ddl.alter_column_type_statement(table_name, diff.column))
    if diff.nullability_changed:
        statements.append(
            ddl.alter_column_nullability_statement(table_name, diff.column.name, diff.not_null)
        )
    if diff.default_changed:
        statements.append(
            ddl.alter_column_default_statement(table_name, diff.column.name, diff.column.default)
        )
    return statements


def plan_columns(table_name: str, desired: TableSpec, live: LiveTableState) -> list[str]:
    """Plan column alterations and additions.

    Live columns are visited first, in live order, and altered where their
    type, nullability or default diverges from the desired column of the
    same name.  Desired columns missing from the table are then added in
    desired order.

    Relaxing nullability on a column of a live primary key that is being
    dropped is left to ``plan_primary_key``, which emits it after the drop.
    """
    desired_by_name = {column.name: column for column in desired.columns}
    released = released_key_columns(table_name, desired, live)
    live_names: set[str] = set()
    statements: list[str] = []

    for live_column in live.columns:
        live_names.add(live_column.name)
        desired_column = desired_by_name.get(live_column.name)
        if desired_column is None:
            continue

        diff = compare_column(desired_column, live_column, desired.primary_key)
        if live_column.name in released:
            diff = diff.model_copy(update={"nullability_changed": False})
        if diff.has_changes:
            statements.extend(_alter_column_statements(table_name, diff))

    for column in desired.columns:
        if column.name not in live_names:
            statements.append(
                ddl.add_column_statement(
                    table_name, column, resolve_not_null(column, desired.primary_key)
                )
            )

    return statements


# ------------------------------------------------------------------
# Primary key facet
# ------------------------------------------------------------------


def desired_primary_key(table_name: str, desired: TableSpec) -> KeyConstraint | None:
    """The desired primary key constraint, or None if none is declared."""
    if not desired.primary_key:
        return None
    return KeyConstraint(
        name=ddl.primary_key_name(table_name),
        is_primary=True,
        columns=list(desired.primary_key),
    )


def released_key_columns(table_name: str, desired: TableSpec, live: LiveTableState) -> list[str]:
    """Columns of the live primary key that become nullable once it is dropped.

    PostgreSQL refuses ``DROP NOT NULL`` on a column still in a primary
    key, so these are relaxed by the primary key facet after the drop.
    """
    live_key = live.primary_key
    if live_key is None or primary_keys_equal(desired_primary_key(table_name, desired), live_key):
        return []

    desired_by_name = {column.name: column for column in desired.columns}
    live_not_null = {column.name: bool(column.not_null) for column in live.columns}
    return [
        name
        for name in live_key.columns
        if name in desired_by_name
        and live_not_null.get(name)
        and not resolve_not_null(desired_by_name[name], desired.primary_key)
    ]


def plan_primary_key(table_name: str, desired: TableSpec, live: LiveTableState) -> list[str]:
    """Plan primary key replacement.

    Emits a drop of the live key and/or an add of the desired key when
    the two differ.  Either may appear alone.  Columns released by the
    drop are made nullable in between.
    """
    desired_key = desired_primary_key(table_name, desired)
    live_key = live.primary_key

    if primary_keys_equal(desired_key, live_key):
        return []

    statements = []
    if live_key is not None:
        statements.append(
            ddl.drop_constraint_statement(
                table_name, live_key.name or ddl.primary_key_name(table_name)
            )
        )
        for name in released_key_columns(table_name, desired, live):
            statements.append(ddl.alter_column_nullability_statement(table_name, name, False))
    if desired_key is not None:
        statements.append(ddl.add_primary_key_statement(table_name, desired_key))
    return statements


# ------------------------------------------------------------------
# Foreign key facet
# ------------------------------------------------------------------


def _matches_any_foreign_key(foreign_key: ForeignKey, candidates: list[ForeignKey]) -> bool:
    return any(foreign_keys_equal(foreign_key, other) for other in candidates)


def plan_foreign_keys(table_name: str, desired: TableSpec, live: LiveTableState) -> list[str]:
    """Plan foreign key drops and additions.

    Foreign keys are never altered in place.  For each desired key without
    a structural match, a stale live key (one matching no desired key and
    not yet dropped) is dropped first: the one sharing the desired key's
    name if there is one, otherwise the last one scanned.  Stale keys left
    over after that are dropped at the end.
    """
    statements: list[str] = []
    dropped: set[str] = set()

    for foreign_key in desired.foreign_keys:
        name = foreign_key.name or ddl.generate_foreign_key_name(table_name, foreign_key)

        matched = False
        candidate: ForeignKey | None = None
        same_name: ForeignKey | None = None
        for live_key in live.foreign_keys:
            if foreign_keys_equal(live_key, foreign_key):
                matched = True
                break
            if live_key.name in dropped or _matches_any_foreign_key(live_key, desired.foreign_keys):
                continue
            candidate = live_key
            if live_key.name == name:
                same_name = live_key

        if matched:
            continue

        # A stale key holding the name we are about to add must go first,
        # otherwise ADD CONSTRAINT collides with it.  Else the last one scanned.
        stale = same_name or candidate
        if stale is not None:
            statements.append(ddl.drop_constraint_statement(table_name, stale.name))
            dropped.add(stale.name)

        statements.append(ddl.add_foreign_key_statement(table_name, foreign_key))

    for live_key in live.foreign_keys:
        if live_key.name in dropped:
            continue
        if _matches_any_foreign_key(live_key, desired.foreign_keys):
            continue
        statements.append(ddl.drop_constraint_statement(table_name, live_key.name))

    return statements


# ------------------------------------------------------------------
# Index facet
# ------------------------------------------------------------------


def named_indexes(table_name: str, indexes: list[Index]) -> list[Index]:
    """Return *indexes* with generated names filled in where missing."""
    return [
        index if index.name else index.model_copy(
            update={"name": ddl.generate_index_name(table_name, index)}
        )
        for index in indexes
    ]


def _drop_index_statement(table_name: str, index: Index, constraint_names: set[str]) -> str:
    # Indexes backing a constraint (e.g. UNIQUE) must be dropped through it
    if index.name in constraint_names:
        return ddl.drop_constraint_statement(table_name, index.name)
    return ddl.drop_index_statement(index.name)


def _replace_indexes(
    table_name: str,
    desired_indexes: list[Index],
    live: LiveTableState,
    unavailable: set[str],
) -> tuple[list[str], set[str]]:
    # Live indexes named in *unavailable* are dropped and cannot match
    statements: list[str] = []
    dropped: set[str] = set()

    for index in desired_indexes:
        matched = False
        same_name: Index | None = None
        for live_index in live.indexes:
            if live_index.name not in unavailable and indexes_equal(live_index, index):
                matched = True
                break
            if live_index.name == index.name:
                same_name = live_index

        if matched:
            continue

        if same_name is not None and same_name.name not in dropped:
            statements.append(_drop_index_statement(table_name, same_name, live.constraint_names))
            dropped.add(same_name.name)

        statements.append(ddl.add_index_statement(table_name, index))

    return statements, dropped


def plan_indexes(table_name: str, desired: TableSpec, live: LiveTableState) -> list[str]:
    """Plan index drops and additions.

    A desired index without a structural match replaces the live index of
    the same name, if any.  A live index replaced this way never counts as
    the match of another desired index, which is then created as well.
    Live indexes matching no desired index are dropped afterwards.
    """
    desired_indexes = named_indexes(table_name, desired.indexes)

    # Each round can only drop more, so this settles within len(live.indexes) rounds
    dropped: set[str] = set()
    while True:
        statements, replaced = _replace_indexes(table_name, desired_indexes, live, dropped)
        if replaced == dropped:
            break
        dropped = replaced

    for live_index in live.indexes:
        if live_index.name in dropped:
            continue
        if any(indexes_equal(live_index, index) for index in desired_indexes):
            continue
        statements.append(_drop_index_statement(table_name, live_index, live.constraint_names))

    return statements


# ------------------------------------------------------------------
# Table planning
# ------------------------------------------------------------------


def plan_create_table(table_name: str, desired: TableSpec) -> list[str]:
    """Plan creation of a table that does not exist yet.

    Returns a single ``CREATE TABLE`` unless the table declares non-unique
    indexes, each of which follows as its own ``CREATE INDEX``.
    """
    spec = desired.model_copy(update={"indexes": named_indexes(table_name, desired.indexes)})
    not_null = {
        column.name: resolve_not_null(column, spec.primary_key) for column in spec.columns
    }

    statements = [ddl.create_table_statement(table_name, spec, not_null)]
    for index in spec.indexes:
        if not index.is_unique:
            statements.append(ddl.add_index_statement(table_name, index))
    return statements


_FACET_PLANNERS = (
    ("columns", plan_columns),
    ("primary_key", plan_primary_key),
    ("foreign_keys", plan_foreign_keys),
    ("indexes", plan_indexes),
)


def build_table_plan(table_name: str, desired: TableSpec, live: LiveTableState) -> list[str]:
    """Build the full DDL plan from a desired spec and a live snapshot.

    Pure function: no I/O.

    Args:
        table_name: Table being reconciled.
        desired: Desired table structure.
        live: Snapshot from ``TableIntrospector.probe()``.

    Returns:
        Ordered list of DDL statements.  Empty when nothing needs to change.

    Raises:
        PlanningError: If a statement cannot be built; ``phase`` names the
            facet (``create``, ``columns``, ``primary_key``,
            ``foreign_keys`` or ``indexes``).
    """
    if desired.is_deleted:
        if not live.exists:
            logger.info(f"Table {table_name} is deleted and absent, nothing to do")
            return []
        logger.info(f"Table {table_name} is marked deleted, planning drop")
        return [ddl.drop_table_statement(table_name)]

    if not live.exists:
        logger.info(f"Table {table_name} does not exist, planning create")
        try:
            return plan_create_table(table_name, desired)
        except ValueError as e:
            raise PlanningError(
                "create", f"Failed to build create table statement for '{table_name}'", e
            ) from e

    statements: list[str] = []
    for phase, planner in _FACET_PLANNERS:
        try:
            statements.extend(planner(table_name, desired, live))
        except ValueError as e:
            raise PlanningError(
                phase, f"Failed to build {phase} statements for '{table_name}'", e
            ) from e

    logger.info(f"Planned {len(statements)} statements for table {table_name}")
    return statements


def plan_table(
    database_url: str,
    table_name: str,
    desired: TableSpec,
    schema_name: str = "public",
) -> list[str]:
    """Plan the DDL that reconciles *table_name* with *desired*.

    Opens one connection, probes the live table, releases the connection
    and diffs.  Never mutates the database.

    Args:
        database_url: PostgreSQL connection URL.
        table_name: Table to reconcile.
        desired: Desired table structure.
        schema_name: PostgreSQL schema holding the table (default: public).

    Returns:
        Ordered list of DDL statements.

    Raises:
        ConnectError: If the database cannot be reached.
        ProbeError: If introspection fails.
        PlanningError: If a statement cannot be built.

    Example:
        statements = plan_table(url, "users", spec)
        if statements:
            apply_statements(url, statements)
    """
    with TableIntrospector(database_url, schema_name=schema_name) as introspector:
        live = introspector.probe(table_name)

    return build_table_plan(table_name, desired, live)
