"""Starlette application factory for the pgweb API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response

from pgweb.api.encoding import PgwebJSONResponse
from pgweb.api.middleware import REQUEST_ID_HEADER, RequestContextMiddleware
from pgweb.api.routes import CLIENT_CLOSED_REQUEST, ClientDisconnected, routes
from pgweb.config.settings import Settings, get_settings
from pgweb.db.introspection import SchemaIntrospector
from pgweb.db.manager import ConnectionManager
from pgweb.models.errors import ErrorCode, ErrorDetail, PgwebError
from pgweb.services.sql_executor import SQLExecutor

logger = logging.getLogger(__name__)


async def handle_pgweb_error(request: Request, exc: PgwebError) -> Response:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return PgwebJSONResponse(exc.to_error_detail().to_dict(), status_code=exc.status_code)


async def handle_client_disconnected(request: Request, exc: Exception) -> Response:
    return Response(status_code=CLIENT_CLOSED_REQUEST)


async def handle_unexpected_error(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = ErrorDetail(code=ErrorCode.INTERNAL_ERROR, message=f"Internal error: {exc}")
    return PgwebJSONResponse(detail.to_dict(), status_code=500)


def create_app(
    settings: Settings | None = None,
    manager: ConnectionManager | None = None,
) -> Starlette:
    """Build the API application.

    Args:
        settings: Service settings; the process-wide settings by default.
        manager: Connection manager to serve; a new one by default.

    Returns:
        Starlette: The configured application. Its lifespan releases the
        active connection on shutdown.

    Example:
        >>> app = create_app()
        >>> uvicorn.run(app, host="0.0.0.0", port=8080)
    """
    settings = settings or get_settings()
    manager = manager or ConnectionManager(settings.pool, settings.timeouts)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info("pgweb API starting")
        try:
            yield
        finally:
            await manager.shutdown()
            logger.info("pgweb API stopped")

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=settings.server.cors_origins,
                allow_methods=["GET", "POST", "OPTIONS", "PUT", "DELETE"],
                allow_headers=[
                    "Content-Type",
                    "Accept",
                    REQUEST_ID_HEADER,
                    "HX-Request",
                    "HX-Trigger",
                    "HX-Target",
                    "HX-Current-URL",
                ],
                expose_headers=[REQUEST_ID_HEADER],
            ),
            Middleware(RequestContextMiddleware),
        ],
        exception_handlers={
            PgwebError: handle_pgweb_error,
            ClientDisconnected: handle_client_disconnected,
            Exception: handle_unexpected_error,
        },
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.manager = manager
    app.state.introspector = SchemaIntrospector(manager, settings.timeouts)
    app.state.executor = SQLExecutor(manager, settings.timeouts)
    return app
