"""Tests for PostgreSQL DDL rendering.

Verifies type canonicalization, default stripping, name generation and
the text of every statement the planner can emit.
"""

import pytest

from db_reconcile.schema import ddl
from db_reconcile.schema.models import ColumnSpec, ForeignKey, Index, KeyConstraint, TableSpec


class TestCanonicalDataType:
    """Verify canonical_data_type() maps aliases and modifiers."""

    @pytest.mark.parametrize(
        "declared, expected",
        [
            ("integer", "integer"),
            ("int", "integer"),
            ("INT4", "integer"),
            ("int8", "bigint"),
            ("bool", "boolean"),
            ("text", "text"),
            ("varchar(255)", "character varying (255)"),
            ("VARCHAR (255)", "character varying (255)"),
            ("character varying (255)", "character varying (255)"),
            ("char(2)", "character (2)"),
            ("timestamp", "timestamp without time zone"),
            ("timestamptz", "timestamp with time zone"),
            ("numeric(10, 2)", "numeric (10,2)"),
            ("decimal(8)", "numeric (8,0)"),
            ("double  precision", "double precision"),
        ],
    )
    def test_canonical_form(self, declared: str, expected: str) -> None:
        """Declared type names normalize to the introspected form."""
        assert ddl.canonical_data_type(declared) == expected

    def test_idempotent(self) -> None:
        """Canonicalizing a canonical type is a no-op."""
        once = ddl.canonical_data_type("varchar(40)")
        assert ddl.canonical_data_type(once) == once


class TestUdtNameToDataType:
    """Verify array element types resolve from catalog names."""

    def test_strips_underscore_and_maps_alias(self) -> None:
        assert ddl.udt_name_to_data_type("_int4") == "integer"
        assert ddl.udt_name_to_data_type("_varchar") == "character varying"

    def test_unknown_name_passes_through(self) -> None:
        assert ddl.udt_name_to_data_type("_text") == "text"
        assert ddl.udt_name_to_data_type("_uuid") == "uuid"


class TestStripOidClass:
    """Verify engine decorations are removed from defaults."""

    def test_regclass_cast_removed(self) -> None:
        assert (
            ddl.strip_oid_class("nextval('users_id_seq'::regclass)")
            == "nextval('users_id_seq')"
        )

    def test_literal_cast_removed(self) -> None:
        assert ddl.strip_oid_class("'active'::character varying") == "'active'"
        assert ddl.strip_oid_class("'{}'::text[]") == "'{}'"

    def test_quoted_number_cast_unquoted(self) -> None:
        """Negative numeric defaults are reported quoted and cast."""
        assert ddl.strip_oid_class("'-1'::integer") == "-1"
        assert ddl.strip_oid_class("'-2.5'::numeric") == "-2.5"
        assert ddl.strip_oid_class("'-1'::int8") == "-1"

    def test_quoted_number_with_text_cast_kept(self) -> None:
        assert ddl.strip_oid_class("'-1'::text") == "'-1'"
        assert ddl.strip_oid_class("'{1}'::integer[]") == "'{1}'"

    def test_plain_expressions_untouched(self) -> None:
        assert ddl.strip_oid_class("now()") == "now()"
        assert ddl.strip_oid_class("0") == "0"


class TestNames:
    """Verify identifier quoting and generated names."""

    def test_quote_identifier_doubles_quotes(self) -> None:
        assert ddl.quote_identifier("users") == '"users"'
        assert ddl.quote_identifier('we"ird') == '"we""ird"'

    def test_generate_index_name_is_deterministic(self) -> None:
        """Same table and columns always produce the same name."""
        index = Index(columns=["email", "org_id"])
        first = ddl.generate_index_name("users", index)
        second = ddl.generate_index_name("users", Index(columns=["email", "org_id"]))
        assert first == second == "idx_users_email_org_id"

    def test_generated_constraint_names(self) -> None:
        foreign_key = ForeignKey(columns=["org_id"], references_table="orgs", references_columns=["id"])
        assert ddl.generate_foreign_key_name("users", foreign_key) == "users_org_id_fkey"
        assert ddl.primary_key_name("users") == "users_pkey"


class TestColumnStatements:
    """Verify column definitions and ALTER COLUMN statements."""

    def test_column_definition_full(self) -> None:
        column = ColumnSpec(name="status", type="varchar(20)", default="'new'")
        assert (
            ddl.column_definition(column, not_null=True)
            == "\"status\" character varying (20) NOT NULL DEFAULT 'new'"
        )

    def test_array_column_type(self) -> None:
        column = ColumnSpec(name="tags", type="text[]")
        assert ddl.render_column_type(column) == "text[]"

    def test_missing_type_raises(self) -> None:
        with pytest.raises(ValueError, match="no data type"):
            ddl.render_column_type(ColumnSpec(name="x", type=" "))

    def test_add_column(self) -> None:
        column = ColumnSpec(name="bio", type="text")
        assert (
            ddl.add_column_statement("users", column, not_null=False)
            == 'ALTER TABLE "users" ADD COLUMN "bio" text'
        )

    def test_alter_type(self) -> None:
        column = ColumnSpec(name="name", type="varchar(100)")
        assert (
            ddl.alter_column_type_statement("users", column)
            == 'ALTER TABLE "users" ALTER COLUMN "name" TYPE character varying (100)'
        )

    def test_alter_nullability(self) -> None:
        assert (
            ddl.alter_column_nullability_statement("users", "email", True)
            == 'ALTER TABLE "users" ALTER COLUMN "email" SET NOT NULL'
        )
        assert (
            ddl.alter_column_nullability_statement("users", "email", False)
            == 'ALTER TABLE "users" ALTER COLUMN "email" DROP NOT NULL'
        )

    def test_alter_default(self) -> None:
        assert (
            ddl.alter_column_default_statement("users", "created_at", "now()")
            == 'ALTER TABLE "users" ALTER COLUMN "created_at" SET DEFAULT now()'
        )
        assert (
            ddl.alter_column_default_statement("users", "created_at", None)
            == 'ALTER TABLE "users" ALTER COLUMN "created_at" DROP DEFAULT'
        )


class TestConstraintStatements:
    """Verify key and foreign key statements."""

    def test_add_primary_key(self) -> None:
        key = KeyConstraint(name="users_pkey", columns=["id", "org_id"])
        assert (
            ddl.add_primary_key_statement("users", key)
            == 'ALTER TABLE "users" ADD CONSTRAINT "users_pkey" PRIMARY KEY ("id", "org_id")'
        )

    def test_add_primary_key_without_columns_raises(self) -> None:
        with pytest.raises(ValueError, match="no columns"):
            ddl.add_primary_key_statement("users", KeyConstraint(columns=[]))

    def test_drop_constraint(self) -> None:
        assert (
            ddl.drop_constraint_statement("users", "users_pkey")
            == 'ALTER TABLE "users" DROP CONSTRAINT "users_pkey"'
        )

    def test_add_foreign_key_with_actions(self) -> None:
        foreign_key = ForeignKey(
            columns=["org_id"],
            references_table="orgs",
            references_columns=["id"],
            on_delete="cascade",
            on_update="set  null",
        )
        assert ddl.add_foreign_key_statement("users", foreign_key) == (
            'ALTER TABLE "users" ADD CONSTRAINT "users_org_id_fkey" '
            'FOREIGN KEY ("org_id") REFERENCES "orgs" ("id") '
            "ON DELETE CASCADE ON UPDATE SET NULL"
        )

    def test_foreign_key_column_count_mismatch_raises(self) -> None:
        foreign_key = ForeignKey(
            name="bad", columns=["a", "b"], references_table="p", references_columns=["id"]
        )
        with pytest.raises(ValueError, match="references 1 columns"):
            ddl.add_foreign_key_statement("users", foreign_key)

    def test_unsupported_action_raises(self) -> None:
        foreign_key = ForeignKey(
            columns=["a"], references_table="p", references_columns=["id"], on_delete="explode"
        )
        with pytest.raises(ValueError, match="Unsupported referential action"):
            ddl.add_foreign_key_statement("users", foreign_key)


class TestIndexStatements:
    """Verify index statements."""

    def test_add_unique_index(self) -> None:
        index = Index(name="idx_users_email", columns=["email"], is_unique=True)
        assert (
            ddl.add_index_statement("users", index)
            == 'CREATE UNIQUE INDEX "idx_users_email" ON "users" ("email")'
        )

    def test_add_index_generates_name(self) -> None:
        index = Index(columns=["org_id", "created_at"])
        assert (
            ddl.add_index_statement("users", index)
            == 'CREATE INDEX "idx_users_org_id_created_at" ON "users" ("org_id", "created_at")'
        )

    def test_add_index_without_columns_raises(self) -> None:
        with pytest.raises(ValueError, match="no columns"):
            ddl.add_index_statement("users", Index(name="empty"))

    def test_drop_index(self) -> None:
        assert ddl.drop_index_statement("idx_users_email") == 'DROP INDEX "idx_users_email"'


class TestTableStatements:
    """Verify CREATE TABLE and DROP TABLE."""

    def test_drop_table(self) -> None:
        assert ddl.drop_table_statement("users") == 'DROP TABLE "users"'

    def test_create_table_inlines_constraints(self) -> None:
        """Columns, primary key, foreign keys and unique indexes are inline."""
        spec = TableSpec(
            name="users",
            primary_key=["id"],
            columns=[
                ColumnSpec(name="id", type="integer"),
                ColumnSpec(name="email", type="varchar(255)", not_null=True),
                ColumnSpec(name="org_id", type="integer"),
            ],
            foreign_keys=[
                ForeignKey(
                    columns=["org_id"],
                    references_table="orgs",
                    references_columns=["id"],
                    on_delete="CASCADE",
                )
            ],
            indexes=[
                Index(columns=["email"], is_unique=True),
                Index(columns=["org_id"]),
            ],
        )
        not_null = {"id": True, "email": True, "org_id": False}

        statement = ddl.create_table_statement("users", spec, not_null)

        assert statement == (
            'CREATE TABLE "users" ('
            '"id" integer NOT NULL, '
            '"email" character varying (255) NOT NULL, '
            '"org_id" integer, '
            'CONSTRAINT "users_pkey" PRIMARY KEY ("id"), '
            'CONSTRAINT "users_org_id_fkey" FOREIGN KEY ("org_id") '
            'REFERENCES "orgs" ("id") ON DELETE CASCADE, '
            'CONSTRAINT "idx_users_email" UNIQUE ("email"))'
        )

    def test_create_table_without_columns_raises(self) -> None:
        with pytest.raises(ValueError, match="declares no columns"):
            ddl.create_table_statement("users", TableSpec(name="users"), {})
