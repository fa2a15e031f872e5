"""Ad-hoc SQL execution against the active connection.

This module runs caller-supplied SQL through a single entry point. The text is
first tried as a row-returning query; statements that return no rows are
executed as commands and report how many rows they touched.
"""

import asyncio
import logging
import time

import asyncpg
from asyncpg import Connection

from pgweb.config.settings import TimeoutConfig
from pgweb.db.manager import ConnectionManager
from pgweb.models.errors import QueryError, ScanError, ValidationError, error_text
from pgweb.models.query import QueryResult, RowsAffectedResult
from pgweb.observability.metrics import MetricsCollector, metrics
from pgweb.services.materializer import materialize

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError)


class SQLExecutor:
    """Runs caller SQL with a deadline and read/write fallback.

    The executor does not classify SQL itself. It prepares the statement and
    lets the server say whether it produces rows:

    1. Prepared statement has result columns: fetch and materialize the rows.
    2. Prepared statement has no result columns: execute it once as a command.
    3. Preparing (or fetching) fails on the server: retry the identical text
       through the simple query protocol, which also accepts several
       statements at once. If that fails too, the first error is reported.

    Example:
        >>> executor = SQLExecutor(manager, TimeoutConfig())
        >>> result = await executor.execute("SELECT 1 AS one")
        >>> result.rows
        [{'one': 1}]
    """

    def __init__(
        self,
        manager: ConnectionManager,
        timeouts: TimeoutConfig,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        """Initialize SQL executor.

        Args:
            manager: Source of the active connection pool.
            timeouts: Per-operation deadlines; ``query`` bounds each call.
            metrics_collector: Metrics sink, the process-wide collector by default.
        """
        self.manager = manager
        self.timeouts = timeouts
        self.metrics = metrics_collector or metrics

    async def execute(self, sql: str) -> QueryResult | RowsAffectedResult:
        """Execute SQL text and return rows or an affected-row count.

        Args:
            sql: Caller-supplied SQL, passed to the server unchanged.

        Returns:
            QueryResult for row-returning statements, RowsAffectedResult
            otherwise.

        Raises:
            ValidationError: If the text is empty or whitespace.
            NoActiveConnectionError: If nothing is connected.
            QueryError: If the statement fails or exceeds the deadline.
            ScanError: If returned rows cannot be decoded.
            IterationError: If reading the rows fails part way.
        """
        if not sql or not sql.strip():
            raise ValidationError("query is required")

        active = await self.manager.current()
        timeout = self.timeouts.query
        started = time.perf_counter()

        try:
            async with asyncio.timeout(timeout), active.pool.acquire() as conn:
                return await self._run(conn, sql)
        except TimeoutError as e:
            self.metrics.increment_db_error("query")
            raise QueryError(
                f"Failed executing query: query exceeded timeout of {timeout} seconds",
                details={"timeout_seconds": timeout, "sql": sql[:200]},
            ) from e
        except Exception:
            self.metrics.increment_db_error("query")
            raise
        finally:
            self.metrics.observe_db_operation("query", time.perf_counter() - started)

    async def _run(self, conn: Connection, sql: str) -> QueryResult | RowsAffectedResult:
        try:
            statement = await conn.prepare(sql)
        except _DRIVER_ERRORS as e:
            return await self._fallback(conn, sql, e)

        columns = [attr.name for attr in statement.get_attributes()]
        if not columns:
            try:
                return await self._execute_statement(conn, sql)
            except _DRIVER_ERRORS as e:
                raise _query_error(e, sql) from e

        try:
            records = await statement.fetch()
        except _DRIVER_ERRORS as e:
            return await self._fallback(conn, sql, e)
        except Exception as e:
            raise ScanError(
                f"Failed reading row data: {error_text(e)}",
                details={"sql": sql[:200]},
            ) from e

        return await materialize(columns, records)

    async def _fallback(
        self, conn: Connection, sql: str, query_error: Exception
    ) -> RowsAffectedResult:
        logger.debug("Query attempt failed, retrying as a command: %s", error_text(query_error))
        try:
            return await self._execute_statement(conn, sql)
        except _DRIVER_ERRORS as exec_error:
            logger.info(
                "Statement failed as query and as command: %s / %s",
                error_text(query_error),
                error_text(exec_error),
            )
            raise _query_error(query_error, sql) from query_error

    async def _execute_statement(self, conn: Connection, sql: str) -> RowsAffectedResult:
        status = await conn.execute(sql)
        return RowsAffectedResult(rows_affected=rows_affected(status))


def rows_affected(status: str | None) -> int:
    """Extract the row count from a command status tag.

    Example:
        >>> rows_affected("INSERT 0 3")
        3
        >>> rows_affected("CREATE TABLE")
        0
    """
    parts = (status or "").split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


def _query_error(error: Exception, sql: str) -> QueryError:
    return QueryError(
        f"Failed executing query: {error_text(error)}",
        details={
            "error_code": getattr(error, "sqlstate", None),
            "sql": sql[:200],
        },
    )
