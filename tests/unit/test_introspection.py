"""Unit tests for SchemaIntrospector."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest
from mocks import AsyncRows, attributes

from pgweb.config.settings import TimeoutConfig
from pgweb.db.introspection import SchemaIntrospector
from pgweb.db.manager import ConnectionManager
from pgweb.models.errors import (
    DatabaseError,
    ExecutionTimeoutError,
    NoActiveConnectionError,
    ValidationError,
)
from pgweb.models.schema import ColumnDescriptor, IndexRef


@pytest.fixture
def introspector(
    connected_manager: ConnectionManager, timeouts: TimeoutConfig
) -> SchemaIntrospector:
    """Create a SchemaIntrospector bound to a manager with a mock pool."""
    return SchemaIntrospector(connected_manager, timeouts)


class TestCatalogListings:
    """Test schema, table, view and index listings."""

    @pytest.mark.asyncio
    async def test_list_schemas(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test schemas come back in catalog order with system schemas filtered."""
        mock_connection.fetch.return_value = [{"nspname": "public"}, {"nspname": "sales"}]

        assert await introspector.list_schemas() == ["public", "sales"]

        query = mock_connection.fetch.await_args.args[0]
        assert r"NOT LIKE 'pg\_%'" in query
        assert "information_schema" in query
        assert "ORDER BY nspname" in query

    @pytest.mark.asyncio
    async def test_list_tables_binds_schema(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test the schema name is passed as a parameter, never spliced in."""
        mock_connection.fetch.return_value = [{"tablename": "orders"}, {"tablename": "users"}]

        assert await introspector.list_tables("public'; --") == ["orders", "users"]

        query, schema = mock_connection.fetch.await_args.args
        assert "pg_tables" in query
        assert "$1" in query
        assert schema == "public'; --"

    @pytest.mark.asyncio
    async def test_list_tables_empty(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test an unknown schema yields an empty list."""
        mock_connection.fetch.return_value = []

        assert await introspector.list_tables("missing") == []

    @pytest.mark.asyncio
    async def test_list_views(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test view names come from pg_views."""
        mock_connection.fetch.return_value = [{"viewname": "active_users"}]

        assert await introspector.list_views("public") == ["active_users"]
        assert "pg_views" in mock_connection.fetch.await_args.args[0]

    @pytest.mark.asyncio
    async def test_list_indexes(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test indexes are paired with their tables."""
        mock_connection.fetch.return_value = [
            {"indexname": "users_pkey", "tablename": "users"},
        ]

        assert await introspector.list_indexes("public") == [
            IndexRef(index="users_pkey", table="users")
        ]


class TestListColumns:
    """Test column metadata."""

    @pytest.mark.asyncio
    async def test_columns_with_constraints(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test constraint kinds are attached and missing ones become empty lists."""
        mock_connection.fetch.return_value = [
            {"column_name": "id", "data_type": "integer", "constraint_types": ["PRIMARY KEY"]},
            {"column_name": "name", "data_type": "text", "constraint_types": []},
            {"column_name": "note", "data_type": "text", "constraint_types": None},
        ]

        columns = await introspector.list_columns("public", "users")

        assert columns == [
            ColumnDescriptor(name="id", type="integer", constraints=["PRIMARY KEY"]),
            ColumnDescriptor(name="name", type="text", constraints=[]),
            ColumnDescriptor(name="note", type="text", constraints=[]),
        ]
        query, schema, table = mock_connection.fetch.await_args.args
        assert "ORDER BY c.ordinal_position" in query
        assert (schema, table) == ("public", "users")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("schema", "table"), [("", "users"), ("public", "")])
    async def test_requires_schema_and_table(
        self, introspector: SchemaIntrospector, schema: str, table: str
    ) -> None:
        """Test both names are required."""
        with pytest.raises(ValidationError, match="schema and table parameters are required"):
            await introspector.list_columns(schema, table)


class TestListTableData:
    """Test listing every row of a table."""

    @pytest.mark.asyncio
    async def test_reads_rows_through_cursor(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test rows are read in a read-only transaction from a quoted table name."""
        statement = mock_connection.prepare.return_value
        statement.get_attributes.return_value = attributes("id", "payload")
        statement.cursor.return_value = AsyncRows([(1, b"x"), (2, None)])

        result = await introspector.list_table_data("public", 'my"table')

        assert result.rows == [{"id": 1, "payload": "x"}, {"id": 2, "payload": None}]
        mock_connection.prepare.assert_awaited_once_with('SELECT * FROM "public"."my""table"')
        mock_connection.transaction.assert_called_once_with(readonly=True)

    @pytest.mark.asyncio
    async def test_rejects_nul_in_name(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test a NUL in the table name is rejected before any SQL is sent."""
        with pytest.raises(ValidationError):
            await introspector.list_table_data("public", "users\x00")

        mock_connection.prepare.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_table(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test a driver error is wrapped with the operation's message."""
        error = asyncpg.PostgresError('relation "public.nope" does not exist')
        error.sqlstate = "42P01"
        mock_connection.prepare.side_effect = error

        with pytest.raises(DatabaseError, match="Failed fetching table data") as exc_info:
            await introspector.list_table_data("public", "nope")

        assert exc_info.value.details["error_code"] == "42P01"


class TestFailures:
    """Test error mapping shared by all operations."""

    @pytest.mark.asyncio
    async def test_no_active_connection(
        self, manager: ConnectionManager, timeouts: TimeoutConfig
    ) -> None:
        """Test every operation needs an active connection."""
        introspector = SchemaIntrospector(manager, timeouts)

        with pytest.raises(NoActiveConnectionError):
            await introspector.list_schemas()

    @pytest.mark.asyncio
    async def test_driver_error_wrapped(
        self, introspector: SchemaIntrospector, mock_connection: MagicMock
    ) -> None:
        """Test driver errors become DatabaseError with the operation's prefix."""
        mock_connection.fetch = AsyncMock(side_effect=asyncpg.PostgresError("permission denied"))

        with pytest.raises(DatabaseError, match="Failed fetching the table names: permission denied"):
            await introspector.list_tables("public")

    @pytest.mark.asyncio
    async def test_catalog_timeout(
        self, connected_manager: ConnectionManager, mock_connection: MagicMock
    ) -> None:
        """Test a slow catalog query is cut off at its deadline."""

        async def slow_fetch(*args: Any, **kwargs: Any) -> None:
            await asyncio.sleep(10)

        mock_connection.fetch = slow_fetch
        introspector = SchemaIntrospector(connected_manager, TimeoutConfig(catalog=0.05))

        with pytest.raises(ExecutionTimeoutError, match="Failed to list schemas"):
            await introspector.list_schemas()
