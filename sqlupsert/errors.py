class UpsertError(Exception):
    """Base exception for sqlupsert errors."""


class NoIDReturnedError(UpsertError):
    """A write that should have returned exactly one row returned none."""


class ExecutionError(UpsertError):
    """
    The executor failed while running a generated statement.

    The underlying driver/SQLAlchemy exception is chained as ``__cause__``
    and is also available as ``orig``.
    """

    def __init__(self, op_type: str, statement: str, orig: BaseException) -> None:
        super().__init__(f"{op_type} failed: {orig}")
        self.op_type = op_type
        self.statement = statement
        self.orig = orig


class ChangeDetectionError(ExecutionError):
    """Fetching the current row for change detection failed."""


class UnsupportedTypeError(UpsertError):
    """The record's shape cannot be mapped onto a single table row."""


class NoKeyColumnsError(UnsupportedTypeError):
    """The record declares no key column, so a WHERE clause cannot be built."""


class DecodeError(UpsertError):
    """A returned row could not be decoded back into the record's fields."""
