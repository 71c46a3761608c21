"""PostgreSQL DDL rendering.

Pure functions that turn canonical descriptors into statement text.
No I/O and no decisions about *whether* a statement is needed -- that
belongs to the planner.  Identifiers are always double-quoted.

Type and default helpers (``canonical_data_type``, ``udt_name_to_data_type``,
``strip_oid_class``) are shared with the introspector so live and desired
values end up in the same textual form.

Functions raise ``ValueError`` when a descriptor cannot be rendered
(no columns, empty type); the planner wraps these into ``PlanningError``.
"""

import re

from db_reconcile.schema.models import ColumnSpec, ForeignKey, Index, KeyConstraint, TableSpec

# Alias -> name as reported by information_schema.columns.data_type
_TYPE_ALIASES = {
    "int": "integer",
    "int4": "integer",
    "int8": "bigint",
    "int2": "smallint",
    "bool": "boolean",
    "varchar": "character varying",
    "char": "character",
    "bpchar": "character",
    "float4": "real",
    "float8": "double precision",
    "float": "double precision",
    "decimal": "numeric",
    "timestamp": "timestamp without time zone",
    "timestamptz": "timestamp with time zone",
    "time": "time without time zone",
    "timetz": "time with time zone",
    "varbit": "bit varying",
}

_MODIFIER_RE = re.compile(r"^(?P<base>.+?)\s*\((?P<mods>[^)]*)\)$")
_REGCLASS_RE = re.compile(r"::regclass\b")
_LITERAL_CAST_RE = re.compile(
    r"^('(?:[^']|'')*')::(?P<type>[a-z][a-z0-9_ ]*)(?P<array>\[\])?$", re.IGNORECASE
)
_NUMBER_RE = re.compile(r"^'(-?\d+(?:\.\d+)?(?:e[+-]?\d+)?)'$", re.IGNORECASE)
_NUMERIC_TYPES = {"smallint", "integer", "bigint", "numeric", "real", "double precision"}

_REFERENTIAL_ACTIONS = {"NO ACTION", "RESTRICT", "CASCADE", "SET NULL", "SET DEFAULT"}


# ============================================================================
# Identifiers and names
# ============================================================================


def quote_identifier(name: str) -> str:
    """Quote an identifier for PostgreSQL.

    Example:
        >>> quote_identifier('my"table')
        '"my""table"'
    """
    return '"' + name.replace('"', '""') + '"'


def _column_list(columns: list[str]) -> str:
    return ", ".join(quote_identifier(c) for c in columns)


def generate_index_name(table_name: str, index: Index) -> str:
    """Deterministic index name derived from the table and its columns.

    Example:
        >>> generate_index_name("users", Index(columns=["email", "org_id"]))
        'idx_users_email_org_id'
    """
    return f"idx_{table_name}_{'_'.join(index.columns)}"


def generate_foreign_key_name(table_name: str, foreign_key: ForeignKey) -> str:
    """Foreign key name in PostgreSQL's own default form."""
    return f"{table_name}_{'_'.join(foreign_key.columns)}_fkey"


def primary_key_name(table_name: str) -> str:
    """Primary key constraint name in PostgreSQL's own default form."""
    return f"{table_name}_pkey"


# ============================================================================
# Types and defaults
# ============================================================================


def canonical_data_type(data_type: str) -> str:
    """Normalize a type name to the form the introspector reports.

    Aliases map to the ``information_schema`` names and a length or
    precision modifier is rendered as ``name (n)``.

    Examples:
        >>> canonical_data_type("VARCHAR(255)")
        'character varying (255)'
        >>> canonical_data_type("int4")
        'integer'
        >>> canonical_data_type("numeric(10, 2)")
        'numeric (10,2)'
    """
    normalized = " ".join(data_type.strip().lower().split())
    modifiers = None
    match = _MODIFIER_RE.match(normalized)
    if match:
        normalized = match.group("base")
        modifiers = [m.strip() for m in match.group("mods").split(",") if m.strip()]

    base = _TYPE_ALIASES.get(normalized, normalized)
    if not modifiers:
        return base
    if base == "numeric" and len(modifiers) == 1:
        modifiers.append("0")
    return f"{base} ({','.join(modifiers)})"


def udt_name_to_data_type(udt_name: str) -> str:
    """Resolve the element type of an array column from its UDT name.

    ``information_schema`` reports array columns with ``data_type = 'ARRAY'``
    and ``udt_name`` set to the internal name, e.g. ``_int4``.

    Example:
        >>> udt_name_to_data_type("_varchar")
        'character varying'
    """
    name = udt_name[1:] if udt_name.startswith("_") else udt_name
    return _TYPE_ALIASES.get(name, name)


def strip_oid_class(default: str) -> str:
    """Remove engine decorations from a column default expression.

    Examples:
        >>> strip_oid_class("nextval('users_id_seq'::regclass)")
        "nextval('users_id_seq')"
        >>> strip_oid_class("'active'::character varying")
        "'active'"
        >>> strip_oid_class("'-1'::integer")
        '-1'
    """
    value = _REGCLASS_RE.sub("", default.strip())
    match = _LITERAL_CAST_RE.match(value)
    if match:
        value = match.group(1)
        # Negative numbers come back quoted and cast, e.g. '-1'::integer
        number = _NUMBER_RE.match(value)
        if (
            number
            and not match.group("array")
            and canonical_data_type(match.group("type")) in _NUMERIC_TYPES
        ):
            value = number.group(1)
    return value


def render_column_type(column: ColumnSpec) -> str:
    """Render the full type of a column, including the array suffix."""
    if not column.type or not column.type.strip():
        raise ValueError(f"Column '{column.name}' has no data type")
    data_type = canonical_data_type(column.type)
    return f"{data_type}[]" if column.is_array else data_type


def column_definition(column: ColumnSpec, not_null: bool) -> str:
    """Render a column definition as used in CREATE TABLE and ADD COLUMN."""
    parts = [quote_identifier(column.name), render_column_type(column)]
    if not_null:
        parts.append("NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {column.default}")
    return " ".join(parts)


# ============================================================================
# Table statements
# ============================================================================


def drop_table_statement(table_name: str) -> str:
    return f"DROP TABLE {quote_identifier(table_name)}"


def create_table_statement(table_name: str, spec: TableSpec, not_null: dict[str, bool]) -> str:
    """Render CREATE TABLE with every inline-capable element of *spec*.

    Columns, the primary key, foreign keys and unique indexes are declared
    inline.  Non-unique indexes cannot be declared inline in PostgreSQL and
    are left to ``add_index_statement``.

    Args:
        table_name: Table to create.
        spec: Desired table structure.
        not_null: Resolved nullability per column name.
    """
    if not spec.columns:
        raise ValueError(f"Table '{table_name}' declares no columns")

    elements = [column_definition(c, not_null[c.name]) for c in spec.columns]

    if spec.primary_key:
        elements.append(
            f"CONSTRAINT {quote_identifier(primary_key_name(table_name))} "
            f"PRIMARY KEY ({_column_list(spec.primary_key)})"
        )

    for foreign_key in spec.foreign_keys:
        name = foreign_key.name or generate_foreign_key_name(table_name, foreign_key)
        elements.append(f"CONSTRAINT {quote_identifier(name)} {_foreign_key_clause(foreign_key)}")

    for index in spec.indexes:
        if index.is_unique:
            _require_columns("Index", index.name, index.columns)
            name = index.name or generate_index_name(table_name, index)
            elements.append(
                f"CONSTRAINT {quote_identifier(name)} UNIQUE ({_column_list(index.columns)})"
            )

    return f"CREATE TABLE {quote_identifier(table_name)} ({', '.join(elements)})"


# ============================================================================
# Column statements
# ============================================================================


def add_column_statement(table_name: str, column: ColumnSpec, not_null: bool) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ADD COLUMN {column_definition(column, not_null)}"
    )


def alter_column_type_statement(table_name: str, column: ColumnSpec) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ALTER COLUMN {quote_identifier(column.name)} TYPE {render_column_type(column)}"
    )


def alter_column_nullability_statement(table_name: str, column_name: str, not_null: bool) -> str:
    action = "SET NOT NULL" if not_null else "DROP NOT NULL"
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ALTER COLUMN {quote_identifier(column_name)} {action}"
    )


def alter_column_default_statement(table_name: str, column_name: str, default: str | None) -> str:
    action = "DROP DEFAULT" if default is None else f"SET DEFAULT {default}"
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ALTER COLUMN {quote_identifier(column_name)} {action}"
    )


# ============================================================================
# Constraint statements
# ============================================================================


def drop_constraint_statement(table_name: str, constraint_name: str) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"DROP CONSTRAINT {quote_identifier(constraint_name)}"
    )


def add_primary_key_statement(table_name: str, key: KeyConstraint) -> str:
    _require_columns("Primary key", key.name, key.columns)
    name = key.name or primary_key_name(table_name)
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ADD CONSTRAINT {quote_identifier(name)} PRIMARY KEY ({_column_list(key.columns)})"
    )


def add_foreign_key_statement(table_name: str, foreign_key: ForeignKey) -> str:
    name = foreign_key.name or generate_foreign_key_name(table_name, foreign_key)
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ADD CONSTRAINT {quote_identifier(name)} {_foreign_key_clause(foreign_key)}"
    )


def _foreign_key_clause(foreign_key: ForeignKey) -> str:
    _require_columns("Foreign key", foreign_key.name, foreign_key.columns)
    if len(foreign_key.columns) != len(foreign_key.references_columns):
        raise ValueError(
            f"Foreign key '{foreign_key.name}' references {len(foreign_key.references_columns)} "
            f"columns for {len(foreign_key.columns)} child columns"
        )

    clause = (
        f"FOREIGN KEY ({_column_list(foreign_key.columns)}) "
        f"REFERENCES {quote_identifier(foreign_key.references_table)} "
        f"({_column_list(foreign_key.references_columns)})"
    )
    if foreign_key.on_delete:
        clause += f" ON DELETE {_referential_action(foreign_key.on_delete)}"
    if foreign_key.on_update:
        clause += f" ON UPDATE {_referential_action(foreign_key.on_update)}"
    return clause


def _referential_action(action: str) -> str:
    normalized = " ".join(action.upper().split())
    if normalized not in _REFERENTIAL_ACTIONS:
        raise ValueError(f"Unsupported referential action: {action}")
    return normalized


# ============================================================================
# Index statements
# ============================================================================


def add_index_statement(table_name: str, index: Index) -> str:
    _require_columns("Index", index.name, index.columns)
    name = index.name or generate_index_name(table_name, index)
    unique = "UNIQUE " if index.is_unique else ""
    return (
        f"CREATE {unique}INDEX {quote_identifier(name)} "
        f"ON {quote_identifier(table_name)} ({_column_list(index.columns)})"
    )


def drop_index_statement(index_name: str) -> str:
    return f"DROP INDEX {quote_identifier(index_name)}"


def _require_columns(kind: str, name: str | None, columns: list[str]) -> None:
    if not columns:
        raise ValueError(f"{kind} '{name or ''}' has no columns")
