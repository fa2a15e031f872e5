"""Catalog models returned by schema introspection."""

from pydantic import BaseModel, Field


class ColumnDescriptor(BaseModel):
    """A table column with its declared type and constraint kinds."""

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Declared SQL type")
    constraints: list[str] = Field(
        default_factory=list,
        description="Distinct constraint types (PRIMARY KEY, FOREIGN KEY, UNIQUE)",
    )


class IndexRef(BaseModel):
    """An index and the table it belongs to."""

    index: str = Field(..., description="Index name")
    table: str = Field(..., description="Owning table name")
