from __future__ import annotations

from typing import Any, Optional

from ..config import UpsertConfig
from ..errors import ChangeDetectionError
from .helpers import as_executor, run_statement
from .models import Detection, Presence
from .schema import TableSchema, decode_row, record_params, table_schema
from .statements import select_sql
from .tags import Role
from .tx import Executor


def _writable_equal(schema: TableSchema, record: Any, current: Any) -> bool:
    for tag in schema.tags:
        if tag.role != Role.WRITABLE:
            continue
        # A custom expression stores a value derived from other fields, so
        # the row can never be proven unchanged.
        if tag.custom_value:
            return False
        if getattr(record, tag.field_name) != getattr(current, tag.field_name):
            return False
    return True


def detect_change(
    executor: Executor,
    record: Any,
    config: Optional[UpsertConfig] = None,
) -> Detection:
    """
    Compare ``record`` with the row currently stored under its key.

    Only the first matching row is consulted: the key columns MUST form a
    unique or primary key for the result to be meaningful.

    Returns:
        Detection with ABSENT (no row), UNCHANGED (all writable values equal)
        or CHANGED, plus the decoded stored row when there is one. Records
        with a custom value expression on a writable column are always
        CHANGED when present.

    Raises:
        ChangeDetectionError: If the SELECT itself fails.
        DecodeError: If the stored row does not fit the record's fields.
    """
    config = config or UpsertConfig()
    schema = table_schema(record)
    row = run_statement(
        as_executor(executor),
        table=record.table_name(),
        op_type="select",
        sql=select_sql(record),
        params=record_params(record),
        long_query_s=config.long_query_s,
        error_cls=ChangeDetectionError,
    )
    if row is None:
        return Detection(Presence.ABSENT)

    current = decode_row(record, row)
    if _writable_equal(schema, record, current):
        return Detection(Presence.UNCHANGED, current)
    return Detection(Presence.CHANGED, current)
