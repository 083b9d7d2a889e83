from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Outcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    NO_CHANGE = "no_change"


class Presence(str, Enum):
    ABSENT = "absent"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


@dataclass(frozen=True)
class ColumnSpec:
    """
    A single SQL column as rendered into generated statements.
    """
    name: str  # unquoted column identifier
    value: str  # placeholder or SQL expression, e.g. ":name"


@dataclass(frozen=True)
class UpsertResult:
    """
    Result of an upsert: what happened, and the record as stored.

    ``record`` is a new value carrying any server-populated columns
    (generated ids, defaults); the caller's record is never mutated.
    """
    outcome: Outcome
    record: Any

    @property
    def inserted(self) -> bool:
        return self.outcome == Outcome.INSERTED


@dataclass(frozen=True)
class Detection:
    presence: Presence
    # decoded existing row, if there was one
    current: Optional[Any] = None
