"""PostgreSQL schema introspection.

This module answers the browser's catalog questions (schemas, tables, views,
indexes, columns) with fixed, parameterized catalog queries, and lists the
rows of a single table. Every call fetches the active pool from the
connection manager, runs under its own deadline, and holds no state.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from asyncpg.connection import Connection

from pgweb.config.settings import TimeoutConfig
from pgweb.db.identifiers import qualified_name
from pgweb.db.manager import ConnectionManager
from pgweb.models.errors import (
    DatabaseError,
    ExecutionTimeoutError,
    PgwebError,
    ValidationError,
    error_text,
)
from pgweb.models.query import QueryResult
from pgweb.models.schema import ColumnDescriptor, IndexRef
from pgweb.observability.metrics import MetricsCollector, metrics
from pgweb.services.materializer import materialize

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Catalog browsing service for the active connection.

    Example:
        >>> introspector = SchemaIntrospector(manager, TimeoutConfig())
        >>> await introspector.list_schemas()
        ['public', 'sales']
        >>> await introspector.list_columns("public", "users")
        [ColumnDescriptor(name='id', type='integer', constraints=['PRIMARY KEY']), ...]
    """

    def __init__(
        self,
        manager: ConnectionManager,
        timeouts: TimeoutConfig,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        """Initialize schema introspector.

        Args:
            manager: Source of the active connection pool.
            timeouts: Deadlines; ``catalog`` for metadata, ``table_data`` for rows.
            metrics_collector: Metrics sink, the process-wide collector by default.
        """
        self.manager = manager
        self.timeouts = timeouts
        self.metrics = metrics_collector or metrics

    async def list_schemas(self) -> list[str]:
        """List user schemas, excluding ``pg_*`` and ``information_schema``."""
        query = r"""
            SELECT nspname
            FROM pg_catalog.pg_namespace
            WHERE nspname NOT LIKE 'pg\_%'
              AND nspname <> 'information_schema'
            ORDER BY nspname
        """
        async with self._connection("list_schemas", "Failed to list schemas") as conn:
            rows = await conn.fetch(query)
        return [row["nspname"] for row in rows]

    async def list_tables(self, schema: str) -> list[str]:
        """List the tables of a schema in lexical order."""
        query = """
            SELECT tablename
            FROM pg_catalog.pg_tables
            WHERE schemaname = $1
            ORDER BY tablename
        """
        async with self._connection("list_tables", "Failed fetching the table names") as conn:
            rows = await conn.fetch(query, schema)
        return [row["tablename"] for row in rows]

    async def list_views(self, schema: str) -> list[str]:
        """List the views of a schema in lexical order."""
        query = """
            SELECT viewname
            FROM pg_catalog.pg_views
            WHERE schemaname = $1
            ORDER BY viewname
        """
        async with self._connection("list_views", "Failed fetching the view names") as conn:
            rows = await conn.fetch(query, schema)
        return [row["viewname"] for row in rows]

    async def list_indexes(self, schema: str) -> list[IndexRef]:
        """List the indexes of a schema with their owning tables, by index name."""
        query = """
            SELECT indexname, tablename
            FROM pg_catalog.pg_indexes
            WHERE schemaname = $1
            ORDER BY indexname
        """
        async with self._connection("list_indexes", "Failed fetching the index names") as conn:
            rows = await conn.fetch(query, schema)
        return [IndexRef(index=row["indexname"], table=row["tablename"]) for row in rows]

    async def list_columns(self, schema: str, table: str) -> list[ColumnDescriptor]:
        """Describe the columns of a table in ordinal order.

        Constraint kinds come from a left join against key usage, so a column
        without constraints gets an empty list.
        """
        _require_table(schema, table)
        query = """
            SELECT c.column_name,
                   c.data_type,
                   array_remove(
                       array_agg(DISTINCT tc.constraint_type ORDER BY tc.constraint_type),
                       NULL
                   ) AS constraint_types
            FROM information_schema.columns c
            LEFT JOIN information_schema.key_column_usage k
              ON c.table_schema = k.table_schema
             AND c.table_name = k.table_name
             AND c.column_name = k.column_name
            LEFT JOIN information_schema.table_constraints tc
              ON k.constraint_schema = tc.constraint_schema
             AND k.constraint_name = tc.constraint_name
            WHERE c.table_schema = $1
              AND c.table_name = $2
            GROUP BY c.column_name, c.data_type, c.ordinal_position
            ORDER BY c.ordinal_position
        """
        async with self._connection("list_columns", "Failed fetching column metadata") as conn:
            rows = await conn.fetch(query, schema, table)
        return [
            ColumnDescriptor(
                name=row["column_name"],
                type=row["data_type"],
                constraints=list(row["constraint_types"] or []),
            )
            for row in rows
        ]

    async def list_table_data(self, schema: str, table: str) -> QueryResult:
        """Return every row and column of ``schema.table``.

        The names cannot be bound as parameters, so they are quoted into the
        statement text. Rows are read through a cursor inside a read-only
        transaction.
        """
        _require_table(schema, table)
        query = f"SELECT * FROM {qualified_name(schema, table)}"
        async with self._connection(
            "list_table_data",
            "Failed fetching table data",
            timeout=self.timeouts.table_data,
        ) as conn:
            statement = await conn.prepare(query)
            columns = [attr.name for attr in statement.get_attributes()]
            async with conn.transaction(readonly=True):
                return await materialize(columns, statement.cursor())

    @asynccontextmanager
    async def _connection(
        self,
        operation: str,
        failure: str,
        *,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> AsyncIterator[Connection]:
        """Acquire a connection under a deadline and translate failures.

        Args:
            operation: Metric label for the call.
            failure: Message prefix for wrapped driver errors.
            timeout: Deadline in seconds; the catalog deadline by default.
        """
        active = await self.manager.current()
        timeout = timeout if timeout is not None else self.timeouts.catalog
        started = time.perf_counter()
        try:
            async with asyncio.timeout(timeout), active.pool.acquire() as conn:
                yield conn
        except TimeoutError as e:
            self.metrics.increment_db_error(operation)
            raise ExecutionTimeoutError(
                f"{failure}: exceeded timeout of {timeout} seconds",
                details={"timeout_seconds": timeout, "operation": operation},
            ) from e
        except PgwebError:
            self.metrics.increment_db_error(operation)
            raise
        except Exception as e:
            self.metrics.increment_db_error(operation)
            logger.error("%s: %s", failure, error_text(e))
            raise DatabaseError(
                f"{failure}: {error_text(e)}",
                details={
                    "operation": operation,
                    "error_code": getattr(e, "sqlstate", None),
                },
            ) from e
        finally:
            self.metrics.observe_db_operation(operation, time.perf_counter() - started)


def _require_table(schema: str, table: str) -> None:
    if not schema or not table:
        raise ValidationError("schema and table parameters are required")
