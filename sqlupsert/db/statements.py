"""
SQL text generation for a single record.

All functions are pure and deterministic: the same record type always
renders the same text, in field declaration order.

⚠️ SECURITY CONTRACT ⚠️
Table and column names are wrapped in double quotes but NOT escaped or
validated. They MUST be trusted identifiers (hardcoded in the record type),
never user input. Values always travel as bound parameters.

Key columns are compared with plain ``=``, so a NULL key never matches an
existing row.
"""
from __future__ import annotations

from typing import Any, Sequence

from .models import ColumnSpec
from .schema import TableSchema, table_schema


def _quote(identifier: str) -> str:
    return f'"{identifier}"'


def set_clause(schema: TableSchema) -> str:
    """``SET "c1" = :c1, "c2" = :c2`` over the writable columns."""
    assignments = ", ".join(f"{_quote(c.name)} = {c.value}" for c in schema.writable)
    return f"SET {assignments}"


def values_clause(schema: TableSchema, columns: Sequence[ColumnSpec] | None = None) -> str:
    """
    ``("c1","c2") VALUES (:c1, :c2)`` over the writable columns, or over
    ``columns`` when given.
    """
    columns = schema.writable if columns is None else columns
    names = ",".join(_quote(c.name) for c in columns)
    values = ", ".join(c.value for c in columns)
    return f"({names}) VALUES ({values})"


def where_clause(schema: TableSchema) -> str:
    """``WHERE "k1" = :k1 AND "k2" = :k2`` over the key columns."""
    predicates = " AND ".join(f"{_quote(c.name)} = {c.value}" for c in schema.keys)
    return f"WHERE {predicates}"


def _keyed(record: Any) -> tuple[str, TableSchema]:
    schema = table_schema(record)
    table = record.table_name()
    schema.require_keys(table)
    return table, schema


def update_sql(record: Any) -> str:
    table, schema = _keyed(record)
    return (
        f"UPDATE {_quote(table)} {set_clause(schema)} {where_clause(schema)} "
        "RETURNING *"
    )


def insert_sql(record: Any) -> str:
    """
    INSERT the writable columns plus any key column the database does not
    generate itself, so natural keys are stored with the row.
    """
    schema = table_schema(record)
    values = values_clause(schema, schema.insertable)
    return f"INSERT INTO {_quote(record.table_name())} {values} RETURNING *"


def select_sql(record: Any) -> str:
    table, schema = _keyed(record)
    return f"SELECT * FROM {_quote(table)} {where_clause(schema)}"


def delete_sql(record: Any) -> str:
    table, schema = _keyed(record)
    return f"DELETE FROM {_quote(table)} {where_clause(schema)}"
