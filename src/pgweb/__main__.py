"""Main entry point for the pgweb service.

This module provides the CLI entry point that serves the HTTP API with
uvicorn.
"""

import logging

import uvicorn

from pgweb.api.app import create_app
from pgweb.config.settings import get_settings
from pgweb.observability.logging import configure_logging
from pgweb.observability.metrics import metrics

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point for the pgweb service.

    Settings are read from the environment, logging is configured, the
    Prometheus endpoint is started when enabled, and the API is served until
    the process is stopped. The active database connection, if any, is closed
    on shutdown.

    Example:
        Run the server:
        >>> python -m pgweb

        Run on another port with JSON logs:
        >>> PGWEB_SERVER_PORT=9000 PGWEB_OBSERVABILITY_LOG_FORMAT=json python -m pgweb
    """
    settings = get_settings()
    configure_logging(
        level=settings.observability.log_level,
        log_format=settings.observability.log_format,
    )

    if settings.observability.metrics_enabled:
        metrics.start_metrics_server(settings.observability.metrics_port)
        logger.info("Metrics server listening on port %d", settings.observability.metrics_port)

    logger.info("Serving pgweb on %s:%d", settings.server.host, settings.server.port)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
