"""Request tracing and context propagation for the pgweb service.

Every HTTP request runs inside a request context carrying a unique ID. The ID
flows through all awaits of the request task via a context variable and is
stamped on each log record by ``RequestContextFilter``.
"""

import contextvars
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

# Context variable for current request ID
_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def generate_request_id() -> str:
    """Generate a unique request ID.

    Returns:
        UUID4-based request ID as a string.
    """
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Get the current request ID from context.

    Returns:
        Current request ID or None if not set.
    """
    return _request_id_var.get()


@asynccontextmanager
async def request_context(request_id: str | None = None) -> AsyncIterator[str]:
    """Context manager for request tracing.

    Args:
        request_id: Optional request ID. If not provided, a new one is generated.

    Yields:
        The request ID for this context.

    Example:
        >>> async with request_context() as req_id:
        ...     logger.info("Listing schemas")
    """
    if request_id is None:
        request_id = generate_request_id()

    token = _request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        _request_id_var.reset(token)


class RequestContextFilter(logging.Filter):
    """Attach the current request ID to log records that lack one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            request_id = get_request_id()
            if request_id is not None:
                record.request_id = request_id
        return True
