"""Query request and result models."""

import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Values a materialized cell may hold. Binary payloads arrive as text and any
# other driver type is rendered to its string form before it gets here.
RowValue = (
    None
    | bool
    | int
    | float
    | str
    | datetime.datetime
    | datetime.date
    | datetime.time
    | datetime.timedelta
)


class QueryRequest(BaseModel):
    """Body of ``POST /query``."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(default="", description="SQL text to execute")


class QueryResult(BaseModel):
    """Rows produced by a row-returning statement."""

    columns: list[str] = Field(default_factory=list, description="Column names in result order")
    rows: list[dict[str, RowValue]] = Field(
        default_factory=list, description="One column-name to value mapping per row"
    )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_response(self) -> dict[str, Any]:
        return {"columns": self.columns, "rows": self.rows}


class RowsAffectedResult(BaseModel):
    """Outcome of a statement that returns no rows."""

    rows_affected: int = Field(default=0, ge=0, description="Rows touched by the statement")
    result: str = Field(default="statement executed", description="Generic success marker")

    def to_response(self) -> dict[str, Any]:
        return {"rows_affected": self.rows_affected, "result": self.result}
