"""JSON encoding of driver values for HTTP responses."""

import datetime
import decimal
import ipaddress
import json
import math
import uuid
from collections.abc import Mapping
from typing import Any

import asyncpg
from starlette.responses import JSONResponse

_NON_FINITE = {math.inf: "Infinity", -math.inf: "-Infinity"}


def to_jsonable(value: Any) -> Any:
    """Recursively convert a value into JSON-compatible types.

    PostgreSQL values are rendered the way the server prints them where JSON
    has no equivalent:
    - date/time types: ISO 8601 strings
    - Decimal and UUID: strings, so no precision is lost
    - non-finite floats: "NaN", "Infinity", "-Infinity"
    - composite records: objects
    - anything else the driver returns (intervals, ranges, geometry): str()

    Example:
        >>> to_jsonable({"at": datetime.date(2024, 1, 31), "price": decimal.Decimal("9.90")})
        {'at': '2024-01-31', 'price': '9.90'}
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value

    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return _NON_FINITE[value]
        return value

    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()

    if isinstance(value, (decimal.Decimal, uuid.UUID, datetime.timedelta)):
        return str(value)

    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(value)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")

    if isinstance(value, asyncpg.Record):
        return {str(k): to_jsonable(v) for k, v in value.items()}

    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]

    return str(value)


class PgwebJSONResponse(JSONResponse):
    """JSONResponse that accepts raw driver values."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            to_jsonable(content),
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")
