"""Database connection and introspection utilities.

This package owns the single active connection pool and answers catalog
questions against it.
"""

from pgweb.db.identifiers import qualified_name, quote_identifier
from pgweb.db.introspection import SchemaIntrospector
from pgweb.db.locks import ReadWriteLock
from pgweb.db.manager import ConnectionManager
from pgweb.db.pool import close_pool, create_pool, ping_pool

__all__ = [
    "SchemaIntrospector",
    "ConnectionManager",
    "ReadWriteLock",
    "create_pool",
    "ping_pool",
    "close_pool",
    "quote_identifier",
    "qualified_name",
]
