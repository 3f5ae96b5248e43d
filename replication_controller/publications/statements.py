"""DDL statement construction for publication management.

PostgreSQL cannot bind identifiers as query parameters, so publication, table
and schema names are interpolated into the statement text. Every name is
quote-escaped and wrapped in double quotes; names containing a statement
terminator are rejected up front by ``validate_identifier``.

A table token may carry a schema prefix and a trailing column list:

>>> quote_table("public.orders(id,name)")
'"public"."orders"(id,name)'

Statements combining tables and schemas are emitted as a single DDL string so
the database applies them in one round trip:

>>> build_alter_add("sales_pub", ["t1"], ["s1"])
'ALTER PUBLICATION "sales_pub" ADD TABLE "t1", TABLES IN SCHEMA "s1";'
"""

from __future__ import annotations

import collections.abc as cabc
import enum

from replication_controller.errors import InvalidIdentifierError

_FORBIDDEN_CHARACTERS = (";", "\x00")
_SCHEMAS_CLAUSE = "TABLES IN SCHEMA"


class _Verb(enum.StrEnum):
    """Statement prefixes sharing the table/schema clause rule."""

    CREATE = "CREATE PUBLICATION {name} FOR"
    ALTER_ADD = "ALTER PUBLICATION {name} ADD"
    ALTER_SET = "ALTER PUBLICATION {name} SET"


def escape_identifier(value: str) -> str:
    """Double embedded single and double quotes."""
    return value.replace("'", "''").replace('"', '""')


def quote_identifier(value: str) -> str:
    """Escape ``value`` and wrap it in double quotes."""
    return f'"{escape_identifier(value)}"'


def validate_identifier(value: str, kind: str) -> str:
    """Reject identifiers that are empty or could end the statement early.

    Parameters
    ----------
    value : str
        Raw identifier or table token supplied by the caller.
    kind : str
        Human-readable identifier kind used in the error message.

    Returns
    -------
    str
        The unchanged ``value``.

    Raises
    ------
    InvalidIdentifierError
        If ``value`` is empty or contains ``;`` or a NUL character.
    """
    if not value:
        msg = f"{kind} must not be empty"
        raise InvalidIdentifierError(msg)
    if any(character in value for character in _FORBIDDEN_CHARACTERS):
        msg = f"{kind} {value!r} contains a forbidden character"
        raise InvalidIdentifierError(msg)
    return value


def quote_table(token: str) -> str:
    """Quote a table token, keeping any column list verbatim.

    The part before the first ``(`` is the table name; it is split into schema
    and table at its first ``.`` and each segment is quoted on its own.
    """
    name, paren, arguments = token.partition("(")
    schema, dot, table = name.partition(".")
    quoted = (
        f"{quote_identifier(schema)}.{quote_identifier(table)}"
        if dot
        else quote_identifier(name)
    )
    return f"{quoted}{paren}{arguments}"


def _join_tables(tables: cabc.Sequence[str]) -> str:
    return ",".join(quote_table(table) for table in tables)


def _join_schemas(schemas: cabc.Sequence[str]) -> str:
    return ",".join(quote_identifier(schema) for schema in schemas)


def _with_members(
    verb: _Verb,
    name: str,
    tables: cabc.Sequence[str],
    schemas: cabc.Sequence[str],
) -> str:
    """Apply the table/schema clause combination rule."""
    prefix = verb.format(name=quote_identifier(name))
    if tables and schemas:
        return (
            f"{prefix} TABLE {_join_tables(tables)}, "
            f"{_SCHEMAS_CLAUSE} {_join_schemas(schemas)};"
        )
    if tables:
        return f"{prefix} TABLE {_join_tables(tables)}"
    if schemas:
        return f"{prefix} {_SCHEMAS_CLAUSE} {_join_schemas(schemas)}"
    msg = "At least one table or schema is required."
    raise ValueError(msg)


def build_create(
    name: str,
    tables: cabc.Sequence[str] = (),
    schemas: cabc.Sequence[str] = (),
) -> str:
    """Return the CREATE PUBLICATION statement for the requested members.

    An empty request publishes every table of the database.
    """
    if not tables and not schemas:
        return f"CREATE PUBLICATION {quote_identifier(name)} FOR ALL TABLES;"
    return _with_members(_Verb.CREATE, name, tables, schemas)


def build_alter_add(
    name: str,
    tables: cabc.Sequence[str],
    schemas: cabc.Sequence[str],
) -> str:
    """Return the ALTER PUBLICATION ... ADD statement.

    Raises
    ------
    ValueError
        If both ``tables`` and ``schemas`` are empty.
    """
    return _with_members(_Verb.ALTER_ADD, name, tables, schemas)


def build_alter_set(
    name: str,
    tables: cabc.Sequence[str],
    schemas: cabc.Sequence[str],
) -> str:
    """Return the ALTER PUBLICATION ... SET statement.

    Raises
    ------
    ValueError
        If both ``tables`` and ``schemas`` are empty.
    """
    return _with_members(_Verb.ALTER_SET, name, tables, schemas)


def build_drop(name: str) -> str:
    """Return the DROP PUBLICATION statement."""
    return f"DROP PUBLICATION {quote_identifier(name)};"


__all__ = [
    "build_alter_add",
    "build_alter_set",
    "build_create",
    "build_drop",
    "escape_identifier",
    "quote_identifier",
    "quote_table",
    "validate_identifier",
]
