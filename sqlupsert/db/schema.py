from __future__ import annotations

import dataclasses
import datetime
import functools
import types
import typing
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Protocol, Union, runtime_checkable

from ..errors import DecodeError, NoKeyColumnsError, UnsupportedTypeError
from .models import ColumnSpec
from .tags import ColumnTag, Role, parse_field

# Field types the engine will not flatten into a single column.
_COMPOSITE_TYPES = (list, tuple, dict, set, frozenset)

# Drivers without native temporal types (sqlite3) return ISO strings.
_ISO_TYPES = (datetime.datetime, datetime.date, datetime.time)


@runtime_checkable
class Upsertable(Protocol):
    """
    A record that knows which table it belongs to.

    Table names are interpolated into SQL as-is and MUST be trusted
    identifiers.
    """

    def table_name(self) -> str:
        ...


@dataclass(frozen=True)
class TableSchema:
    """
    Column classification of one record type, in field declaration order.
    """
    record_type: type
    tags: tuple[ColumnTag, ...]
    writable: tuple[ColumnSpec, ...]
    keys: tuple[ColumnSpec, ...]
    # writable columns, then keys not generated by the database
    insertable: tuple[ColumnSpec, ...] = ()
    hints: Mapping[str, Any] = dataclasses.field(
        default_factory=dict, compare=False, repr=False
    )

    def require_keys(self, table: str) -> None:
        """
        Refuse to build a WHERE clause without key columns, which would
        target every row of the table.
        """
        if not self.keys:
            raise NoKeyColumnsError(
                f"{self.record_type.__name__} declares no key column; "
                f"refusing to build an unrestricted WHERE clause for table {table!r}"
            )


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    origin = typing.get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        optional = len(args) < len(typing.get_args(hint))
        if len(args) == 1:
            return args[0], optional
        return hint, optional
    return hint, False


def _is_composite(hint: Any) -> bool:
    hint, _ = _unwrap_optional(hint)
    origin = typing.get_origin(hint) or hint
    if isinstance(origin, type) and issubclass(origin, _COMPOSITE_TYPES):
        return True
    return dataclasses.is_dataclass(hint)


def _resolve_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        # Unresolvable forward references; fall back to the raw annotations.
        return {f.name: f.type for f in dataclasses.fields(cls)}


@functools.lru_cache(maxsize=None)
def _table_schema(cls: type) -> TableSchema:
    if not dataclasses.is_dataclass(cls):
        raise UnsupportedTypeError(
            f"{cls.__name__} is not a dataclass; records must be flat dataclasses"
        )
    if not callable(getattr(cls, "table_name", None)):
        raise UnsupportedTypeError(f"{cls.__name__} does not define table_name()")

    hints = _resolve_hints(cls)
    tags: list[ColumnTag] = []
    writable: list[ColumnSpec] = []
    keys: list[ColumnSpec] = []
    insert_keys: list[ColumnSpec] = []

    for field in dataclasses.fields(cls):
        tag = parse_field(field)
        tags.append(tag)
        if tag.role == Role.OMIT:
            continue

        if not tag.custom_value and _is_composite(hints.get(field.name)):
            raise UnsupportedTypeError(
                f"{cls.__name__}.{field.name} is a composite type; "
                "mark it omitted or give it a custom value expression"
            )

        spec = ColumnSpec(name=tag.column, value=tag.value)
        if tag.role == Role.KEY:
            keys.append(spec)
            if not tag.generated:
                insert_keys.append(spec)
        else:
            writable.append(spec)

    return TableSchema(
        record_type=cls,
        tags=tuple(tags),
        writable=tuple(writable),
        keys=tuple(keys),
        insertable=tuple(writable + insert_keys),
        hints=hints,
    )


def table_schema(record: Any) -> TableSchema:
    """
    Return the (memoized) column classification for a record or record type.

    Raises:
        UnsupportedTypeError: If the record is not a flat dataclass exposing
            table_name(), or has an un-annotated composite field.
    """
    cls = record if isinstance(record, type) else type(record)
    return _table_schema(cls)


def record_params(record: Any) -> dict[str, Any]:
    """
    Bind parameters for a record, keyed by column name.

    Omitted fields are included so that custom value expressions may
    reference them, e.g. ``ll_to_earth(:lat, :lon)``.
    """
    schema = table_schema(record)
    return {tag.column: getattr(record, tag.field_name) for tag in schema.tags}


def _decode_value(tag: ColumnTag, hint: Any, value: Any) -> Any:
    if hint is None or isinstance(hint, str):
        return value

    target, optional = _unwrap_optional(hint)
    if target is Any or target is object:
        return value
    if not isinstance(target, type) or typing.get_origin(target) is not None:
        # Any, Literal, unions and generics are passed through unchecked.
        return value

    if value is None:
        if optional:
            return None
        raise DecodeError(
            f"column {tag.column!r} is NULL but field {tag.field_name!r} "
            f"is not Optional[{target.__name__}]"
        )

    if isinstance(value, target):
        return value
    if target is float and isinstance(value, int):
        return float(value)
    if target is bool and isinstance(value, int) and value in (0, 1):
        return bool(value)
    if issubclass(target, Enum):
        try:
            return target(value)
        except ValueError as exc:
            raise DecodeError(
                f"column {tag.column!r}: {value!r} is not a valid {target.__name__}"
            ) from exc
    if issubclass(target, _ISO_TYPES) and isinstance(value, str):
        try:
            return target.fromisoformat(value)
        except ValueError as exc:
            raise DecodeError(
                f"column {tag.column!r}: {value!r} is not an ISO {target.__name__}"
            ) from exc
    if target is Decimal and isinstance(value, (str, int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise DecodeError(
                f"column {tag.column!r}: {value!r} is not a valid Decimal"
            ) from exc

    raise DecodeError(
        f"column {tag.column!r}: cannot decode {type(value).__name__} "
        f"into field {tag.field_name!r} of type {target.__name__}"
    )


def decode_row(record: Any, row: Mapping[str, Any]) -> Any:
    """
    Return a copy of ``record`` with every field whose column appears in
    ``row`` replaced by the row's value.

    Omitted fields are populated too when the row carries a column of the
    same name (e.g. a generated ``id``). Row columns without a matching
    field are ignored.

    Raises:
        DecodeError: If a value does not fit the field's declared type.
    """
    schema = table_schema(record)
    init_changes: dict[str, Any] = {}
    late_changes: dict[str, Any] = {}
    init_fields = {f.name for f in dataclasses.fields(record) if f.init}

    for tag in schema.tags:
        if tag.column not in row:
            continue
        value = _decode_value(tag, schema.hints.get(tag.field_name), row[tag.column])
        if tag.field_name in init_fields:
            init_changes[tag.field_name] = value
        else:
            late_changes[tag.field_name] = value

    try:
        decoded = dataclasses.replace(record, **init_changes)
    except (TypeError, ValueError) as exc:
        raise DecodeError(
            f"cannot rebuild {type(record).__name__} from returned row: {exc}"
        ) from exc

    # init=False fields are not accepted by replace(); set them directly,
    # the same way dataclasses does for frozen instances.
    for name, value in late_changes.items():
        object.__setattr__(decoded, name, value)
    return decoded
