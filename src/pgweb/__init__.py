"""pgweb - a web-based PostgreSQL database browser.

An HTTP service that connects to one PostgreSQL database at a time using
credentials supplied at runtime, browses its catalog, lists table data, and
runs ad-hoc SQL.
"""

__version__ = "0.1.0"

from pgweb.api.app import create_app
from pgweb.config.settings import Settings, get_settings
from pgweb.db.manager import ConnectionManager
from pgweb.models.connection import ConnectionConfig
from pgweb.models.errors import (
    DatabaseConnectionError,
    DatabaseError,
    ErrorCode,
    NoActiveConnectionError,
    PgwebError,
    QueryError,
    ValidationError,
)
from pgweb.models.query import QueryRequest, QueryResult, RowsAffectedResult

__all__ = [
    "__version__",
    # App
    "create_app",
    "ConnectionManager",
    # Config
    "Settings",
    "get_settings",
    # Models
    "ConnectionConfig",
    "QueryRequest",
    "QueryResult",
    "RowsAffectedResult",
    # Errors
    "PgwebError",
    "ValidationError",
    "NoActiveConnectionError",
    "QueryError",
    "DatabaseError",
    "DatabaseConnectionError",
    "ErrorCode",
]
