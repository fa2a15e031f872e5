"""Data models module."""

from pgweb.models.connection import ActiveConnection, ConnectionConfig
from pgweb.models.errors import (
    CloseError,
    ConnectionValidationError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorCode,
    ErrorDetail,
    ExecutionTimeoutError,
    HealthCheckError,
    InvalidRequestError,
    IterationError,
    MigrationError,
    NoActiveConnectionError,
    PgwebError,
    QueryError,
    ScanError,
    ValidationError,
)
from pgweb.models.query import QueryRequest, QueryResult, RowsAffectedResult
from pgweb.models.schema import ColumnDescriptor, IndexRef

__all__ = [
    # Connection models
    "ConnectionConfig",
    "ActiveConnection",
    # Schema models
    "ColumnDescriptor",
    "IndexRef",
    # Query models
    "QueryRequest",
    "QueryResult",
    "RowsAffectedResult",
    # Error models
    "ErrorCode",
    "ErrorDetail",
    "PgwebError",
    "ValidationError",
    "InvalidRequestError",
    "NoActiveConnectionError",
    "QueryError",
    "DatabaseError",
    "DatabaseConnectionError",
    "ConnectionValidationError",
    "HealthCheckError",
    "CloseError",
    "ExecutionTimeoutError",
    "ScanError",
    "IterationError",
    "MigrationError",
]
