"""Observability module for the pgweb service.

This module provides:
- Prometheus metrics collection
- Structured JSON or text logging with credential redaction
- Request ID propagation

Example:
    >>> from pgweb.observability import configure_logging, metrics, request_context
    >>>
    >>> configure_logging(level="INFO", log_format="json")
    >>> async with request_context() as request_id:
    ...     metrics.increment_http_request("GET", "/schemas", 200)
"""

from pgweb.observability.logging import (
    JSONFormatter,
    SensitiveDataFilter,
    TextFormatter,
    configure_logging,
)
from pgweb.observability.metrics import MetricsCollector, metrics
from pgweb.observability.tracing import (
    RequestContextFilter,
    generate_request_id,
    get_request_id,
    request_context,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "metrics",
    # Logging
    "configure_logging",
    "JSONFormatter",
    "TextFormatter",
    "SensitiveDataFilter",
    # Tracing
    "RequestContextFilter",
    "request_context",
    "generate_request_id",
    "get_request_id",
]
