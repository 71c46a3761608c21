"""PostgreSQL table introspection via information_schema and pg_catalog.

This module queries the live database to snapshot a single table:
- Existence
- Columns (canonical type, array element type, nullability, default)
- Primary key
- Foreign keys (child columns, parent table, parent columns, actions)
- Indexes (name, columns, uniqueness), excluding the primary key index
- Names of all table constraints (to tell constraint-backed indexes apart)

All queries are read-only.  Uses psycopg (v3) for PostgreSQL connections.
"""

import logging

import psycopg
from psycopg import Connection

from db_reconcile.adapters.postgres import to_libpq_url, with_connect_timeout
from db_reconcile.errors import ConnectError, ProbeError
from db_reconcile.schema.ddl import strip_oid_class, udt_name_to_data_type
from db_reconcile.schema.models import ColumnSpec, ForeignKey, Index, KeyConstraint, LiveTableState

logger = logging.getLogger(__name__)

# pg_constraint.confdeltype / confupdtype codes; 'a' (NO ACTION) is the default
_REFERENTIAL_ACTIONS = {
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


class TableIntrospector:
    """Introspects a single PostgreSQL table.

    The connection is opened on entry and closed on exit, including when
    a probe fails.

    Usage:
        with TableIntrospector(database_url) as introspector:
            live = introspector.probe("users")
            if live.exists:
                print([c.name for c in live.columns])
    """

    def __init__(self, database_url: str, schema_name: str = "public"):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            schema_name: PostgreSQL schema holding the table (default: public)
        """
        self._database_url = database_url
        self._schema_name = schema_name
        self._conn: Connection | None = None

    def __enter__(self) -> "TableIntrospector":
        """Context manager entry - opens connection."""
        url = with_connect_timeout(to_libpq_url(self._database_url))
        try:
            self._conn = psycopg.connect(url)
        except psycopg.Error as e:
            raise ConnectError("Failed to connect to postgres", e) from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def probe(self, table_name: str) -> LiveTableState:
        """Snapshot the live structure of *table_name*.

        Args:
            table_name: Table to introspect.

        Returns:
            ``LiveTableState``; only ``exists=False`` when the table is absent.

        Raises:
            RuntimeError: If called outside the ``with`` block.
            ProbeError: If any metadata query or row decode fails.
        """
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use with statement.")

        try:
            if not self._table_exists(table_name):
                logger.debug(f"Table {self._schema_name}.{table_name} does not exist")
                return LiveTableState(exists=False)

            state = LiveTableState(
                exists=True,
                columns=self._get_columns(table_name),
                primary_key=self._get_primary_key(table_name),
                foreign_keys=self._get_foreign_keys(table_name),
                indexes=self._get_indexes(table_name),
                constraint_names=self._get_constraint_names(table_name),
            )
        except psycopg.Error as e:
            raise ProbeError(f"Failed to query metadata for table '{table_name}'", e) from e
        except (TypeError, ValueError) as e:
            raise ProbeError(f"Failed to decode metadata for table '{table_name}'", e) from e

        logger.debug(
            f"Probed {self._schema_name}.{table_name}: {len(state.columns)} columns, "
            f"{len(state.foreign_keys)} foreign keys, {len(state.indexes)} indexes"
        )
        return state

    def _table_exists(self, table_name: str) -> bool:
        query = """
            SELECT count(1)
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_name = %s
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (self._schema_name, table_name))
            row = cur.fetchone()
            return bool(row and row[0] > 0)

    def _get_columns(self, table_name: str) -> list[ColumnSpec]:
        """Get columns in ordinal order, with types in canonical form."""
        query = """
            SELECT
                column_name,
                column_default,
                is_nullable,
                data_type,
                udt_name,
                character_maximum_length,
                numeric_precision,
                numeric_scale
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ordinal_position
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (self._schema_name, table_name))
            columns = []
            for row in cur.fetchall():
                (
                    name,
                    default,
                    is_nullable,
                    data_type,
                    udt_name,
                    char_max_length,
                    numeric_precision,
                    numeric_scale,
                ) = row

                is_array = False
                if data_type == "ARRAY":
                    # Element type comes from the catalog name, e.g. _int4
                    is_array = True
                    data_type = udt_name_to_data_type(udt_name)
                elif data_type == "USER-DEFINED":
                    data_type = udt_name

                if char_max_length is not None:
                    data_type = f"{data_type} ({char_max_length})"
                elif data_type == "numeric" and numeric_precision is not None:
                    data_type = f"numeric ({numeric_precision},{numeric_scale or 0})"

                columns.append(
                    ColumnSpec(
                        name=name,
                        type=data_type,
                        not_null=(is_nullable == "NO"),
                        default=strip_oid_class(default) if default is not None else None,
                        is_array=is_array,
                    )
                )
            return columns

    def _get_primary_key(self, table_name: str) -> KeyConstraint | None:
        query = """
            SELECT
                c.conname,
                a.attname
            FROM pg_constraint c
            JOIN pg_class t ON t.oid = c.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(c.conkey) WITH ORDINALITY AS k(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
            WHERE c.contype = 'p'
              AND n.nspname = %s
              AND t.relname = %s
            ORDER BY k.ordinality
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (self._schema_name, table_name))
            rows = cur.fetchall()
            if not rows:
                return None
            return KeyConstraint(
                name=rows[0][0],
                is_primary=True,
                columns=[row[1] for row in rows],
            )

    def _get_foreign_keys(self, table_name: str) -> list[ForeignKey]:
        query = """
            SELECT
                c.conname,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ordinality)
                    JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum
                    ORDER BY k.ordinality
                ) AS child_columns,
                p.relname AS parent_table,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(c.confkey) WITH ORDINALITY AS k(attnum, ordinality)
                    JOIN pg_attribute a ON a.attrelid = c.confrelid AND a.attnum = k.attnum
                    ORDER BY k.ordinality
                ) AS parent_columns,
                c.confdeltype::text,
                c.confupdtype::text
            FROM pg_constraint c
            JOIN pg_class t ON t.oid = c.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_class p ON p.oid = c.confrelid
            WHERE c.contype = 'f'
              AND n.nspname = %s
              AND t.relname = %s
            ORDER BY c.conname
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (self._schema_name, table_name))
            foreign_keys = []
            for row in cur.fetchall():
                name, child_columns, parent_table, parent_columns, on_delete, on_update = row
                foreign_keys.append(
                    ForeignKey(
                        name=name,
                        columns=list(child_columns),
                        references_table=parent_table,
                        references_columns=list(parent_columns),
                        on_delete=_REFERENTIAL_ACTIONS.get(on_delete),
                        on_update=_REFERENTIAL_ACTIONS.get(on_update),
                    )
                )
            return foreign_keys

    def _get_indexes(self, table_name: str) -> list[Index]:
        """Get indexes for a table (excluding primary key)."""
        query = """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
              AND NOT ix.indisprimary
            GROUP BY i.relname, ix.indisunique
            ORDER BY i.relname
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (self._schema_name, table_name))
            return [
                Index(name=name, columns=list(columns), is_unique=is_unique)
                for name, columns, is_unique in cur.fetchall()
            ]

    def _get_constraint_names(self, table_name: str) -> set[str]:
        query = """
            SELECT c.conname
            FROM pg_constraint c
            JOIN pg_class t ON t.oid = c.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            WHERE n.nspname = %s
              AND t.relname = %s
        """
        with self._conn.cursor() as cur:
            cur.execute(query, (self._schema_name, table_name))
            return {row[0] for row in cur.fetchall()}
