"""Custom exceptions and error codes for the pgweb service.

This module defines the exception hierarchy raised by the connection manager,
the query engine and the schema introspector. Each exception carries the HTTP
status it maps to, so the web layer can translate failures without knowing
their origin.
"""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the application."""

    # Client errors (4xx)
    INVALID_REQUEST = "invalid_request"
    VALIDATION_FAILED = "validation_failed"
    NO_ACTIVE_CONNECTION = "no_active_connection"
    QUERY_FAILED = "query_failed"

    # Server errors (5xx)
    INTERNAL_ERROR = "internal_error"
    DATABASE_ERROR = "database_error"
    DATABASE_CONNECTION_ERROR = "database_connection_error"
    CONNECTION_VALIDATION_FAILED = "connection_validation_failed"
    HEALTH_CHECK_FAILED = "health_check_failed"
    CLOSE_FAILED = "close_failed"
    EXECUTION_TIMEOUT = "execution_timeout"
    SCAN_ERROR = "scan_error"
    ITERATION_ERROR = "iteration_error"
    MIGRATION_FAILED = "migration_failed"


class ErrorDetail:
    """Structured error detail information."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize error detail.

        Args:
            code: Error code identifier.
            message: Human-readable error message.
            details: Optional additional context.
        """
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation.

        Returns:
            dict: Dictionary containing error information.
        """
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"ErrorDetail(code={self.code}, message={self.message!r})"


class PgwebError(Exception):
    """Base exception for all pgweb errors.

    Subclasses pin the error code and the HTTP status the failure maps to.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize base error.

        Args:
            message: Human-readable error message.
            code: Error code identifier.
            details: Optional additional context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_error_detail(self) -> ErrorDetail:
        """Convert exception to ErrorDetail.

        Returns:
            ErrorDetail: Structured error detail.
        """
        return ErrorDetail(code=self.code, message=self.message, details=self.details)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={self.message!r})"


class ValidationError(PgwebError):
    """Raised for malformed connection parameters or empty query text."""

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.VALIDATION_FAILED, details=details)


class InvalidRequestError(PgwebError):
    """Raised when a request body cannot be decoded."""

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.INVALID_REQUEST, details=details)


class NoActiveConnectionError(PgwebError):
    """Raised when an operation needs an active connection and none exists."""

    status_code = 400

    def __init__(
        self,
        message: str = "No active connection. Call POST /connect first",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=ErrorCode.NO_ACTIVE_CONNECTION, details=details)


class QueryError(PgwebError):
    """Raised when caller SQL fails both as a query and as a statement.

    The caller-supplied text is assumed to be malformed, so this maps to a
    client error and carries the driver message verbatim.
    """

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.QUERY_FAILED, details=details)


class DatabaseError(PgwebError):
    """Raised for catalog or data-listing query failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.DATABASE_ERROR, details=details)


class DatabaseConnectionError(PgwebError):
    """Raised when opening a connection pool fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.DATABASE_CONNECTION_ERROR,
    ) -> None:
        super().__init__(message=message, code=code, details=details)


class ConnectionValidationError(DatabaseConnectionError):
    """Raised when a freshly opened pool does not answer its first ping."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            details=details,
            code=ErrorCode.CONNECTION_VALIDATION_FAILED,
        )


class HealthCheckError(PgwebError):
    """Raised when the active pool fails its health ping."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.HEALTH_CHECK_FAILED, details=details)


class CloseError(PgwebError):
    """Raised when the active pool cannot be closed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.CLOSE_FAILED, details=details)


class ExecutionTimeoutError(PgwebError):
    """Raised when a catalog or data query exceeds its deadline."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.EXECUTION_TIMEOUT, details=details)


class ScanError(PgwebError):
    """Raised when a result row cannot be decoded into the column layout."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.SCAN_ERROR, details=details)


class IterationError(PgwebError):
    """Raised when a result cursor reports a fault while being consumed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.ITERATION_ERROR, details=details)


class MigrationError(PgwebError):
    """Raised when the external migration tool fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code=ErrorCode.MIGRATION_FAILED, details=details)


def error_text(exc: BaseException) -> str:
    """Driver error message, falling back to the exception type name."""
    return str(exc) or type(exc).__name__
