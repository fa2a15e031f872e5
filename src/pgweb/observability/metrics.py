"""Prometheus metrics collector for the pgweb service.

This module implements metrics collection using prometheus_client, tracking
HTTP requests, database round trips, and the lifecycle of the active
connection.
"""

from prometheus_client import Counter, Gauge, Histogram, start_http_server


class MetricsCollector:
    """Centralized metrics collector using Prometheus client.

    Metrics Categories:
    - HTTP metrics: request counts per route and status
    - Database metrics: per-operation latency and failures
    - Connection metrics: swaps and whether a connection is active

    Example:
        >>> metrics = MetricsCollector()
        >>> metrics.increment_http_request("GET", "/schemas", 200)
        >>> metrics.observe_db_operation("list_schemas", 0.012)
    """

    _instance: "MetricsCollector | None" = None

    def __new__(cls) -> "MetricsCollector":
        """Ensure singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize_metrics()
        return cls._instance

    def _initialize_metrics(self) -> None:
        # HTTP Metrics
        self.http_requests: Counter = Counter(
            "pgweb_http_requests_total",
            "Total number of HTTP requests handled",
            labelnames=["method", "route", "status"],
        )

        # Database Metrics
        self.db_operation_duration: Histogram = Histogram(
            "pgweb_db_operation_duration_seconds",
            "Database operation duration in seconds",
            labelnames=["operation"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 15.0),
        )

        self.db_operation_errors: Counter = Counter(
            "pgweb_db_operation_errors_total",
            "Total number of failed database operations",
            labelnames=["operation"],
        )

        # Connection Metrics
        self.connection_swaps: Counter = Counter(
            "pgweb_connection_swaps_total",
            "Connect attempts by outcome",
            labelnames=["outcome"],
        )

        self.active_connection: Gauge = Gauge(
            "pgweb_active_connection",
            "Whether a database connection is currently active (0 or 1)",
        )

    def start_metrics_server(self, port: int) -> None:
        """Start the Prometheus metrics HTTP server.

        Args:
            port: Port number to listen on for metrics scraping.
        """
        start_http_server(port)

    def increment_http_request(self, method: str, route: str, status: int) -> None:
        self.http_requests.labels(method=method, route=route, status=str(status)).inc()

    def observe_db_operation(self, operation: str, duration: float) -> None:
        self.db_operation_duration.labels(operation=operation).observe(duration)

    def increment_db_error(self, operation: str) -> None:
        self.db_operation_errors.labels(operation=operation).inc()

    def increment_connection_swap(self, outcome: str) -> None:
        """Count a connect attempt.

        Args:
            outcome: One of ``connected``, ``replaced``, ``failed``.
        """
        self.connection_swaps.labels(outcome=outcome).inc()

    def set_active_connection(self, active: bool) -> None:
        self.active_connection.set(1 if active else 0)


# Singleton instance
metrics = MetricsCollector()
