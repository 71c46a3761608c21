"""Tests for TableIntrospector.

psycopg is mocked; each test feeds catalog rows in the order the
introspector queries them: existence, columns, primary key, foreign
keys, indexes, constraint names.
"""

from unittest.mock import MagicMock, patch

import psycopg
import pytest

from db_reconcile.errors import ConnectError, ProbeError
from db_reconcile.schema.introspector import TableIntrospector


def _cursor(mock_connect: MagicMock) -> MagicMock:
    conn = mock_connect.return_value
    return conn.cursor.return_value.__enter__.return_value


COLUMN_ROWS = [
    # name, default, is_nullable, data_type, udt_name, char_len, precision, scale
    ("id", "nextval('users_id_seq'::regclass)", "NO", "integer", "int4", None, 32, 0),
    ("email", None, "NO", "character varying", "varchar", 255, None, None),
    ("tags", None, "YES", "ARRAY", "_text", None, None, None),
    ("mood", "'ok'::mood", "YES", "USER-DEFINED", "mood", None, None, None),
    ("balance", None, "YES", "numeric", "numeric", None, 10, 2),
]


class TestConnection:
    """Verify connection handling."""

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_connect_adds_timeout_and_normalizes_url(self, mock_connect: MagicMock) -> None:
        with TableIntrospector("postgres://localhost/app"):
            pass
        mock_connect.assert_called_once_with("postgresql://localhost/app?connect_timeout=10")

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_connect_failure_raises_connect_error(self, mock_connect: MagicMock) -> None:
        mock_connect.side_effect = psycopg.OperationalError("refused")
        with pytest.raises(ConnectError) as exc_info:
            with TableIntrospector("postgresql://localhost/app"):
                pass
        assert exc_info.value.phase == "connect"

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_close_on_exit(self, mock_connect: MagicMock) -> None:
        with TableIntrospector("postgresql://localhost/app"):
            pass
        mock_connect.return_value.close.assert_called_once()

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_close_when_probe_fails(self, mock_connect: MagicMock) -> None:
        _cursor(mock_connect).execute.side_effect = psycopg.ProgrammingError("denied")
        with pytest.raises(ProbeError):
            with TableIntrospector("postgresql://localhost/app") as introspector:
                introspector.probe("users")
        mock_connect.return_value.close.assert_called_once()

    def test_probe_without_connection_raises(self) -> None:
        with pytest.raises(RuntimeError, match="not connected"):
            TableIntrospector("postgresql://localhost/app").probe("users")


class TestProbe:
    """Verify probe() decodes catalog rows into LiveTableState."""

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_absent_table(self, mock_connect: MagicMock) -> None:
        cursor = _cursor(mock_connect)
        cursor.fetchone.return_value = (0,)

        with TableIntrospector("postgresql://localhost/app") as introspector:
            state = introspector.probe("users")

        assert state.exists is False
        assert state.columns == []
        cursor.fetchall.assert_not_called()

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_existing_table(self, mock_connect: MagicMock) -> None:
        cursor = _cursor(mock_connect)
        cursor.fetchone.return_value = (1,)
        cursor.fetchall.side_effect = [
            COLUMN_ROWS,
            [("users_pkey", "id")],
            [
                ("users_org_id_fkey", ["org_id"], "orgs", ["id"], "c", "a"),
                ("users_owner_fkey", ["owner_a", "owner_b"], "owners", ["a", "b"], "n", "r"),
            ],
            [
                ("idx_users_email", ["email"], True),
                ("idx_users_mood_tags", ["mood", "tags"], False),
            ],
            [("users_pkey",), ("idx_users_email",), ("users_org_id_fkey",)],
        ]

        with TableIntrospector("postgresql://localhost/app", schema_name="app") as introspector:
            state = introspector.probe("users")

        assert state.exists is True

        columns = {c.name: c for c in state.columns}
        assert [c.name for c in state.columns] == ["id", "email", "tags", "mood", "balance"]
        assert columns["id"].type == "integer"
        assert columns["id"].not_null is True
        assert columns["id"].default == "nextval('users_id_seq')"
        assert columns["email"].type == "character varying (255)"
        assert columns["tags"].type == "text"
        assert columns["tags"].is_array is True
        assert columns["tags"].not_null is False
        assert columns["mood"].type == "mood"
        assert columns["mood"].default == "'ok'"
        assert columns["balance"].type == "numeric (10,2)"

        assert state.primary_key.name == "users_pkey"
        assert state.primary_key.columns == ["id"]

        org, owner = state.foreign_keys
        assert org.references_table == "orgs"
        assert org.on_delete == "CASCADE"
        assert org.on_update is None
        assert owner.columns == ["owner_a", "owner_b"]
        assert owner.on_delete == "SET NULL"
        assert owner.on_update == "RESTRICT"

        assert state.indexes[0].is_unique is True
        assert state.indexes[1].columns == ["mood", "tags"]
        assert state.constraint_names == {"users_pkey", "idx_users_email", "users_org_id_fkey"}

        # Every query is scoped to the configured schema
        for call in cursor.execute.call_args_list:
            assert call.args[1] == ("app", "users")

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_table_without_primary_key(self, mock_connect: MagicMock) -> None:
        cursor = _cursor(mock_connect)
        cursor.fetchone.return_value = (1,)
        cursor.fetchall.side_effect = [[COLUMN_ROWS[1]], [], [], [], []]

        with TableIntrospector("postgresql://localhost/app") as introspector:
            state = introspector.probe("users")

        assert state.exists is True
        assert state.primary_key is None
        assert state.foreign_keys == []
        assert state.indexes == []

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_query_failure_raises_probe_error(self, mock_connect: MagicMock) -> None:
        cursor = _cursor(mock_connect)
        cursor.fetchone.return_value = (1,)
        cursor.fetchall.side_effect = psycopg.errors.InsufficientPrivilege("denied")

        with TableIntrospector("postgresql://localhost/app") as introspector:
            with pytest.raises(ProbeError) as exc_info:
                introspector.probe("users")

        assert exc_info.value.phase == "probe"
        assert "Failed to query metadata" in str(exc_info.value)

    @patch("db_reconcile.schema.introspector.psycopg.connect")
    def test_malformed_row_raises_probe_error(self, mock_connect: MagicMock) -> None:
        cursor = _cursor(mock_connect)
        cursor.fetchone.return_value = (1,)
        cursor.fetchall.side_effect = [[("id", None, "NO")]]

        with TableIntrospector("postgresql://localhost/app") as introspector:
            with pytest.raises(ProbeError, match="Failed to decode metadata"):
                introspector.probe("users")
