"""ASGI middleware for request tracing and request metrics."""

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pgweb.observability.metrics import MetricsCollector, metrics
from pgweb.observability.tracing import request_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware:
    """Run each HTTP request inside its own request context.

    The request ID is taken from the ``X-Request-ID`` header when present,
    generated otherwise, and echoed back on the response.
    """

    def __init__(self, app: ASGIApp, metrics_collector: MetricsCollector | None = None) -> None:
        self.app = app
        self.metrics = metrics_collector or metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = Headers(scope=scope).get(REQUEST_ID_HEADER)
        status = 500

        async with request_context(incoming) as request_id:

            async def send_with_request_id(message: Message) -> None:
                nonlocal status
                if message["type"] == "http.response.start":
                    status = message["status"]
                    MutableHeaders(scope=message).append(REQUEST_ID_HEADER, request_id)
                await send(message)

            try:
                await self.app(scope, receive, send_with_request_id)
            finally:
                endpoint = scope.get("endpoint")
                route = getattr(endpoint, "__name__", "unmatched")
                self.metrics.increment_http_request(scope["method"], route, status)
