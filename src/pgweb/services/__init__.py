"""Service layer for the pgweb service.

This module provides ad-hoc SQL execution and the row materialization shared
with table data listing.
"""

from pgweb.services.materializer import materialize
from pgweb.services.sql_executor import SQLExecutor

__all__ = [
    "SQLExecutor",
    "materialize",
]
