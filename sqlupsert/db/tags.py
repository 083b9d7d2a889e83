from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

COLUMN_KEY = "column"
ROLE_KEY = "role"
VALUE_KEY = "value"
GENERATED_KEY = "generated"


class Role(str, Enum):
    KEY = "key"
    WRITABLE = "writable"
    OMIT = "omit"


@dataclass(frozen=True)
class ColumnTag:
    field_name: str
    column: str
    role: Role
    value: str
    # True when the value expression was given explicitly
    custom_value: bool = False
    # key filled in by the database (serial ids); left out of INSERT
    generated: bool = False


def column(
    name: Optional[str] = None,
    role: Role | str | None = None,
    value: Optional[str] = None,
    generated: bool = False,
    **field_kwargs: Any,
) -> Any:
    """
    Declare a dataclass field together with its column metadata.

    Usage:
        @dataclass
        class Person:
            name: str
            age: int
            id: Optional[int] = column(role=Role.KEY, generated=True, default=None)
            lat: float = column(role=Role.OMIT, default=0.0)
            lon: float = column(role=Role.OMIT, default=0.0)
            location: Optional[str] = column(value="ll_to_earth(:lat, :lon)", default=None)

            def table_name(self) -> str:
                return "person"

    Any extra keyword arguments (``default``, ``default_factory``, ``compare``...)
    are passed through to ``dataclasses.field``.
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    if name is not None:
        metadata[COLUMN_KEY] = name
    if role is not None:
        metadata[ROLE_KEY] = role
    if value is not None:
        metadata[VALUE_KEY] = value
    if generated:
        metadata[GENERATED_KEY] = True
    return dataclasses.field(metadata=metadata, **field_kwargs)


def parse_role(raw: Role | str | None) -> Role:
    """
    Resolve a role annotation.

    A ``Role`` member is taken as is. A raw string is matched by token
    containment: anything containing "omit" is omitted, else anything
    containing "key" is a key, else the column is writable. Raw strings
    must therefore not use one token inside the other's spelling.
    """
    if raw is None:
        return Role.WRITABLE
    if isinstance(raw, Role):
        return raw
    if Role.OMIT.value in raw:
        return Role.OMIT
    if Role.KEY.value in raw:
        return Role.KEY
    return Role.WRITABLE


def parse_field(field: dataclasses.Field) -> ColumnTag:
    metadata = field.metadata
    column_name = metadata.get(COLUMN_KEY) or field.name.lower()
    value = metadata.get(VALUE_KEY)
    return ColumnTag(
        field_name=field.name,
        column=column_name,
        role=parse_role(metadata.get(ROLE_KEY)),
        value=value or f":{column_name}",
        custom_value=bool(value),
        generated=bool(metadata.get(GENERATED_KEY)),
    )
