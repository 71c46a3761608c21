"""Pydantic models for desired and live table structure.

This module contains the schema-domain models shared by the prober,
the comparators and the planners:
- Descriptor models: ColumnSpec, KeyConstraint, ForeignKey, Index
- Desired state: TableSpec (loaded from a declarative document)
- Live state: LiveTableState (snapshot produced by TableIntrospector)

Models accept both snake_case and camelCase field names so declarative
documents can use ``primaryKey``, ``isDeleted``, ``notNull``, etc.

Equality between descriptors is *not* ``==``.  Names take no part in
facet equality; use the functions in ``db_reconcile.schema.comparator``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _SchemaModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Descriptor Models
# ============================================================================


class ColumnSpec(_SchemaModel):
    """Schema for a table column.

    ``not_null`` is unset (``None``) on desired columns that do not declare
    nullability; live columns always carry a concrete boolean.  A type
    written with a trailing ``[]`` is split into the element type and
    ``is_array=True``.

    Example:
        >>> col = ColumnSpec(name="tags", type="text[]")
        >>> col.type, col.is_array
        ('text', True)
    """

    name: str
    type: str
    not_null: bool | None = None
    default: str | None = None
    is_array: bool = False

    @model_validator(mode="before")
    @classmethod
    def _split_array_suffix(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data_type = data.get("type")
        if isinstance(data_type, str) and data_type.strip().endswith("[]"):
            data = {k: v for k, v in data.items() if k not in ("isArray", "is_array")}
            data["type"] = data_type.strip()[:-2].strip()
            data["is_array"] = True
        return data


class KeyConstraint(_SchemaModel):
    """A primary key (or other key) constraint.

    ``name`` is only used to target a drop; it is not part of equality.
    """

    name: str | None = None
    is_primary: bool = True
    columns: list[str] = Field(default_factory=list)


class ForeignKey(_SchemaModel):
    """A foreign key constraint from this table to a parent table.

    Accepts the nested document form
    ``{"columns": [...], "references": {"table": ..., "columns": [...]}}``
    as well as the flat field names.
    """

    name: str | None = None
    columns: list[str] = Field(default_factory=list)
    references_table: str
    references_columns: list[str] = Field(default_factory=list)
    on_delete: str | None = None
    on_update: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_references(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("references"), dict):
            return data
        data = dict(data)
        references = data.pop("references")
        data.setdefault("references_table", references.get("table"))
        data.setdefault("references_columns", references.get("columns", []))
        return data


class Index(_SchemaModel):
    """An index over one or more columns.

    Desired indexes may omit ``name``; the planner then assigns the
    deterministic name from ``db_reconcile.schema.ddl.generate_index_name``.
    """

    name: str | None = None
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False


# ============================================================================
# Desired State
# ============================================================================


class TableSpec(_SchemaModel):
    """Desired (declared) structure of a single table.

    An empty ``primary_key`` means the table should have no primary key.
    ``is_deleted`` means the table should not exist at all.

    Example:
        >>> spec = TableSpec.model_validate({
        ...     "name": "users",
        ...     "primaryKey": ["id"],
        ...     "columns": [{"name": "id", "type": "integer"}],
        ... })
        >>> spec.primary_key
        ['id']
    """

    name: str
    is_deleted: bool = False
    columns: list[ColumnSpec] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)
    foreign_keys: list[ForeignKey] = Field(default_factory=list)
    indexes: list[Index] = Field(default_factory=list)


# ============================================================================
# Comparison Result
# ============================================================================


class ColumnDiff(_SchemaModel):
    """Differences between a live column and its desired counterpart.

    ``not_null`` and ``default`` hold the desired (resolved) values.
    """

    column: ColumnSpec
    not_null: bool
    type_changed: bool = False
    nullability_changed: bool = False
    default_changed: bool = False

    @property
    def has_changes(self) -> bool:
        return self.type_changed or self.nullability_changed or self.default_changed


# ============================================================================
# Live State
# ============================================================================


class LiveTableState(_SchemaModel):
    """Point-in-time snapshot of a table as found in the database.

    When ``exists`` is False every other field is empty.
    ``constraint_names`` holds the names of all table constraints; an index
    whose name appears there is backed by a constraint (e.g. UNIQUE).
    """

    exists: bool = False
    columns: list[ColumnSpec] = Field(default_factory=list)
    primary_key: KeyConstraint | None = None
    foreign_keys: list[ForeignKey] = Field(default_factory=list)
    indexes: list[Index] = Field(default_factory=list)
    constraint_names: set[str] = Field(default_factory=set)
