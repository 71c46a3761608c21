"""Facet comparison for columns, primary keys, foreign keys and indexes.

Pure logic -- no I/O, no database connections.  Each facet has its own
notion of identity:

- Columns are matched by name and compared on type, nullability and default.
- Primary keys compare their column lists in order; ``None`` means
  "no primary key" and only equals ``None``.
- Foreign keys compare (child columns, parent table, parent columns).
- Indexes compare (columns, uniqueness).

Constraint and index names never take part in equality; they are only
used to target drops.

Usage:
    from db_reconcile.schema.comparator import compare_column, indexes_equal

    diff = compare_column(desired_column, live_column, primary_key=["id"])
    if diff.has_changes:
        ...
"""

from db_reconcile.schema.ddl import render_column_type, strip_oid_class
from db_reconcile.schema.models import ColumnDiff, ColumnSpec, ForeignKey, Index, KeyConstraint


def resolve_not_null(column: ColumnSpec, primary_key: list[str]) -> bool:
    """Resolve the tri-state nullability of a desired column to a bool.

    Primary key columns are always NOT NULL.  An unset ``not_null``
    means nullable.

    Examples:
        >>> resolve_not_null(ColumnSpec(name="id", type="integer"), ["id"])
        True
        >>> resolve_not_null(ColumnSpec(name="bio", type="text"), ["id"])
        False
    """
    if column.name in primary_key:
        return True
    return bool(column.not_null)


def _normalize_default(default: str | None) -> str | None:
    if default is None:
        return None
    return strip_oid_class(default)


def compare_column(
    desired: ColumnSpec,
    live: ColumnSpec,
    primary_key: list[str],
) -> ColumnDiff:
    """Compare a live column against the desired column of the same name.

    Args:
        desired: Column as declared in the desired spec.
        live: Column as reported by the introspector (canonical form).
        primary_key: Desired primary key columns, used to resolve
            nullability of *desired*.

    Returns:
        ``ColumnDiff`` flagging each diverging property.

    Raises:
        ValueError: If either column has no data type.
    """
    not_null = resolve_not_null(desired, primary_key)
    return ColumnDiff(
        column=desired,
        not_null=not_null,
        type_changed=render_column_type(desired) != render_column_type(live),
        nullability_changed=not_null != bool(live.not_null),
        default_changed=_normalize_default(desired.default) != _normalize_default(live.default),
    )


def primary_keys_equal(a: KeyConstraint | None, b: KeyConstraint | None) -> bool:
    """Nil-safe structural equality of two primary keys.

    Examples:
        >>> primary_keys_equal(None, None)
        True
        >>> primary_keys_equal(None, KeyConstraint(columns=["id"]))
        False
        >>> primary_keys_equal(
        ...     KeyConstraint(name="a", columns=["id"]),
        ...     KeyConstraint(name="b", columns=["id"]),
        ... )
        True
    """
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return a.is_primary == b.is_primary and a.columns == b.columns


def foreign_keys_equal(a: ForeignKey, b: ForeignKey) -> bool:
    """Structural equality of two foreign keys (name and actions excluded)."""
    return (
        a.columns == b.columns
        and a.references_table == b.references_table
        and a.references_columns == b.references_columns
    )


def indexes_equal(a: Index, b: Index) -> bool:
    """Structural equality of two indexes (name excluded)."""
    return a.columns == b.columns and a.is_unique == b.is_unique
