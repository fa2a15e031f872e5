"""Result materialization for schema-unknown result sets.

Ad-hoc queries and table listings both return rows whose shape is only known
at runtime. This module turns any row source (a fetched record list or an
asyncpg cursor) into column names plus one JSON-safe mapping per row.
"""

import datetime
from collections.abc import AsyncIterable, Iterable, Sequence
from typing import Any

from pgweb.models.errors import IterationError, PgwebError, ScanError, error_text
from pgweb.models.query import QueryResult, RowValue

_VARIANT_TYPES = (bool, int, float, str, datetime.date, datetime.time, datetime.timedelta)


async def materialize(
    columns: Sequence[str],
    records: Iterable[Any] | AsyncIterable[Any],
) -> QueryResult:
    """Project every record onto the column list.

    Args:
        columns: Column names, read once up front. A row whose width differs
            is rejected.
        records: Rows as sequences of values (asyncpg records, tuples). Both
            plain and async iterables are accepted.

    Returns:
        QueryResult: Column names and one column-to-value mapping per row.

    Raises:
        ScanError: If a row cannot be read into the column layout.
        IterationError: If the row source fails while being consumed.

    Example:
        >>> result = await materialize(["id", "name"], [(1, b"alice")])
        >>> result.rows
        [{'id': 1, 'name': 'alice'}]
    """
    names = [str(name) for name in columns]
    rows: list[dict[str, RowValue]] = []

    try:
        if isinstance(records, AsyncIterable):
            index = 0
            async for record in records:
                rows.append(_project(names, _scan(record, len(names), index)))
                index += 1
        else:
            for index, record in enumerate(records):
                rows.append(_project(names, _scan(record, len(names), index)))
    except PgwebError:
        raise
    except Exception as e:
        raise IterationError(
            f"Failed iterating rows: {error_text(e)}",
            details={"rows_read": len(rows)},
        ) from e

    return QueryResult(columns=names, rows=rows)


def to_row_value(value: Any) -> RowValue:
    """Fit a single cell into the row value variant.

    Scalars and date/time values keep their type. Raw byte payloads become
    text, and any other driver value (numeric, uuid, array, composite) is
    rendered with str().

    Example:
        >>> to_row_value(b"abc"), to_row_value(Decimal("9.90"))
        ('abc', '9.90')
    """
    if value is None or isinstance(value, _VARIANT_TYPES):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _scan(record: Any, width: int, index: int) -> tuple[Any, ...]:
    try:
        values = tuple(record.values()) if hasattr(record, "values") else tuple(record)
    except Exception as e:
        raise ScanError(
            f"Failed scanning row {index}: {error_text(e)}",
            details={"row": index},
        ) from e
    if len(values) != width:
        raise ScanError(
            f"Failed scanning row {index}: expected {width} values, got {len(values)}",
            details={"row": index, "expected": width, "actual": len(values)},
        )
    return values


def _project(columns: list[str], values: tuple[Any, ...]) -> dict[str, RowValue]:
    return {name: to_row_value(value) for name, value in zip(columns, values, strict=True)}
