"""Identifier quoting for dynamically built SQL.

Schema and table names cannot be bound as query parameters, so listing a
table's rows is the one place where caller input is spliced into SQL text.
Every such name must go through ``quote_identifier``; nothing else in the
service builds SQL by concatenation.
"""

from pgweb.models.errors import ValidationError


def quote_identifier(name: str) -> str:
    """Quote a name as a PostgreSQL delimited identifier.

    Embedded double quotes are doubled and the result is wrapped in double
    quotes, so the name is always read as exactly one identifier.

    Args:
        name: Raw identifier as supplied by the caller.

    Returns:
        str: The delimited identifier.

    Raises:
        ValidationError: If the name is empty or contains a NUL character,
            which PostgreSQL identifiers cannot hold.

    Example:
        >>> quote_identifier('my"table')
        '"my""table"'
    """
    if not name:
        raise ValidationError("identifier must not be empty")
    if "\x00" in name:
        raise ValidationError("identifier must not contain NUL characters")
    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema: str, table: str) -> str:
    """Quote and join a schema-qualified table name.

    Example:
        >>> qualified_name("public", "users")
        '"public"."users"'
    """
    return f"{quote_identifier(schema)}.{quote_identifier(table)}"
