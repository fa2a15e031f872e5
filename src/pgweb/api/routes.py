"""HTTP endpoints of the database browser.

Handlers decode the request, call the connection manager, the schema
introspector or the SQL executor stored on ``app.state``, and shape the JSON
response. Failures are raised as ``PgwebError`` and rendered by the
application's exception handler.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from pgweb.api.encoding import PgwebJSONResponse
from pgweb.db.introspection import SchemaIntrospector
from pgweb.db.manager import ConnectionManager
from pgweb.models.connection import ConnectionConfig
from pgweb.models.errors import InvalidRequestError
from pgweb.models.query import QueryRequest
from pgweb.services.sql_executor import SQLExecutor

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Non-standard status used when the client went away before the answer.
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    """The client closed the connection while its operation was running."""


async def cancel_on_disconnect(request: Request, operation: Awaitable[T]) -> T:
    """Run ``operation`` and cancel it if the client disconnects first.

    Cancellation reaches the awaited driver call, which asyncpg turns into a
    server-side query cancel.

    Raises:
        ClientDisconnected: If the client disconnected before completion.
    """
    task = asyncio.ensure_future(operation)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            return task.result()
        task.cancel()
        await asyncio.wait({task})
        logger.info("Client disconnected from %s, operation cancelled", request.url.path)
        raise ClientDisconnected(request.url.path)
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError(f"Failed to decode request body: {e}") from e


def _manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


def _introspector(request: Request) -> SchemaIntrospector:
    return request.app.state.introspector


def _executor(request: Request) -> SQLExecutor:
    return request.app.state.executor


async def connect(request: Request) -> Response:
    config = ConnectionConfig.from_payload(await _json_body(request))
    await cancel_on_disconnect(request, _manager(request).connect(config))
    return PgwebJSONResponse(
        {"message": f"Successful connection to the database {config.database} achieved!"},
        status_code=202,
    )


async def validate(request: Request) -> Response:
    config = await cancel_on_disconnect(request, _manager(request).validate())
    return PgwebJSONResponse({"message": f"Database {config.database} connection is healthy"})


async def close(request: Request) -> Response:
    await _manager(request).close()
    return PgwebJSONResponse({"message": "Database connection closed successfully"})


async def list_schemas(request: Request) -> Response:
    schemas = await cancel_on_disconnect(request, _introspector(request).list_schemas())
    return PgwebJSONResponse({"schemas": schemas, "count": len(schemas)})


async def list_tables(request: Request) -> Response:
    schema = request.path_params["schema"]
    tables = await cancel_on_disconnect(request, _introspector(request).list_tables(schema))
    return PgwebJSONResponse({"schema": schema, "tables": tables, "count": len(tables)})


async def list_views(request: Request) -> Response:
    schema = request.path_params["schema"]
    views = await cancel_on_disconnect(request, _introspector(request).list_views(schema))
    return PgwebJSONResponse({"schema": schema, "views": views, "count": len(views)})


async def list_indexes(request: Request) -> Response:
    schema = request.path_params["schema"]
    indexes = await cancel_on_disconnect(request, _introspector(request).list_indexes(schema))
    return PgwebJSONResponse(
        {
            "schema": schema,
            "indexes": [index.model_dump() for index in indexes],
            "count": len(indexes),
        }
    )


async def list_columns(request: Request) -> Response:
    schema = request.path_params.get("schema", "")
    table = request.path_params.get("table", "")
    columns = await cancel_on_disconnect(
        request, _introspector(request).list_columns(schema, table)
    )
    return PgwebJSONResponse(
        {
            "schema": schema,
            "table": table,
            "columns": [column.model_dump() for column in columns],
        }
    )


async def list_table_data(request: Request) -> Response:
    schema = request.path_params.get("schema", "")
    table = request.path_params.get("table", "")
    result = await cancel_on_disconnect(
        request, _introspector(request).list_table_data(schema, table)
    )
    return PgwebJSONResponse({"schema": schema, "table": table, "rows": result.rows})


async def query(request: Request) -> Response:
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        raise InvalidRequestError("Failed to decode request body: expected a JSON object")
    try:
        body = QueryRequest.model_validate(payload)
    except ValueError as e:
        raise InvalidRequestError(f"Failed to decode request body: {e}") from e
    result = await cancel_on_disconnect(request, _executor(request).execute(body.query))
    return PgwebJSONResponse(result.to_response())


routes = [
    Route("/connect", connect, methods=["POST"]),
    Route("/validate", validate, methods=["GET"]),
    Route("/close", close, methods=["POST"]),
    Route("/schemas", list_schemas, methods=["GET"]),
    Route("/schemas/{schema}/tables", list_tables, methods=["GET"]),
    Route("/schemas/{schema}/tables/{table}/columns", list_columns, methods=["GET"]),
    Route("/schemas/{schema}/tables/{table}/data", list_table_data, methods=["GET"]),
    Route("/schemas/{schema}/views", list_views, methods=["GET"]),
    Route("/schemas/{schema}/indexes", list_indexes, methods=["GET"]),
    Route("/query", query, methods=["POST"]),
]
