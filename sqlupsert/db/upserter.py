from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..config import UpsertConfig
from ..errors import ExecutionError, NoIDReturnedError
from .detect import detect_change
from .helpers import as_executor, run_statement
from .metrics import observe_outcome
from .models import Outcome, Presence, UpsertResult
from .schema import decode_row, record_params
from .statements import delete_sql, insert_sql, select_sql, update_sql
from .tx import DbFactory, DbTx, Executor

logger = logging.getLogger(__name__)


class Upserter:
    """
    Saves a single record to its table: update if a row with the same key
    exists, insert otherwise.

    Records are flat dataclasses exposing ``table_name()``; see
    ``sqlupsert.column`` for declaring key/omitted columns and custom value
    expressions. Records are never mutated: every write returns a new record
    carrying whatever the database returned (generated ids, defaults).

    Every statement runs exactly once. There are no retries and no locking;
    concurrent upserts of the same key rely on a unique constraint over the
    key columns and/or the isolation level of the surrounding transaction.

    Usage:
        upserter = Upserter()

        with DbSession(engine) as session:
            result = upserter.upsert(session, person)
        person = result.record

        # or let sqlupsert own the transaction
        result = upserter.upsert_tx(engine, person)
    """

    def __init__(self, config: Optional[UpsertConfig] = None) -> None:
        self.config = config or UpsertConfig()

    def _run(self, executor: Executor, record: Any, op_type: str, sql: str, fetch: bool = True) -> Any:
        return run_statement(
            executor,
            table=record.table_name(),
            op_type=op_type,
            sql=sql,
            params=record_params(record),
            fetch=fetch,
            long_query_s=self.config.long_query_s,
        )

    def _try_update(self, executor: Executor, record: Any) -> Any | None:
        row = self._run(executor, record, "update", update_sql(record))
        if row is None:
            return None
        return decode_row(record, row)

    def _result(self, record: Any, outcome: Outcome) -> UpsertResult:
        table = record.table_name()
        observe_outcome(table, outcome.value)
        logger.debug("upsert into %s: %s", table, outcome.value)
        return UpsertResult(outcome=outcome, record=record)

    def upsert(self, executor: Any, record: Any) -> UpsertResult:
        """
        Update-or-insert ``record`` using the caller's connection or transaction.

        No transaction is opened here; wrap the call yourself (DbSession,
        DbTransaction) or use upsert_tx().

        With change detection enabled (the default) the current row is read
        first: an identical row yields NO_CHANGE without any write, a missing
        row goes straight to INSERT. Without it, UPDATE is attempted first and
        any matched row is reported as UPDATED.

        Raises:
            ExecutionError: If a statement fails; an update failure is raised
                immediately, without attempting the insert.
            NoIDReturnedError: If the INSERT returned no row.
            UnsupportedTypeError, DecodeError
        """
        executor = as_executor(executor)

        if self.config.detect_changes:
            detection = detect_change(executor, record, self.config)
            if detection.presence == Presence.UNCHANGED:
                return self._result(detection.current, Outcome.NO_CHANGE)
            if detection.presence == Presence.CHANGED:
                updated = self._try_update(executor, record)
                if updated is not None:
                    return self._result(updated, Outcome.UPDATED)
                # The row disappeared between SELECT and UPDATE; insert it.
        else:
            updated = self._try_update(executor, record)
            if updated is not None:
                return self._result(updated, Outcome.UPDATED)

        return self._result(self.insert(executor, record), Outcome.INSERTED)

    def upsert_tx(self, engine: Engine | DbFactory, record: Any) -> UpsertResult:
        """
        Run upsert() inside a transaction opened on ``engine`` (an Engine or a
        DbFactory).

        Commits if the whole sequence succeeded, otherwise rolls back and
        re-raises. The commit/rollback decision is taken once, after all steps.

        Raises:
            TypeError: If the factory does not hand back a DbTx.
        """
        factory = DbFactory(engine) if isinstance(engine, Engine) else engine

        try:
            tx: DbTx = factory.begin()
        except SQLAlchemyError as exc:
            raise ExecutionError("begin", "BEGIN", exc) from exc
        if not isinstance(tx, DbTx):
            raise TypeError(
                f"{type(factory).__name__}.begin() returned {type(tx).__name__}, "
                "which has no commit()/rollback()"
            )

        try:
            result = self.upsert(tx, record)
        except Exception:
            tx.rollback()
            raise

        try:
            tx.commit()
        except SQLAlchemyError as exc:
            raise ExecutionError("commit", "COMMIT", exc) from exc
        return result

    def update(self, executor: Any, record: Any) -> Any:
        """
        UPDATE the row matching ``record``'s key and return the stored record.

        Raises:
            NoIDReturnedError: If no row matched the key.
        """
        updated = self._try_update(as_executor(executor), record)
        if updated is None:
            raise NoIDReturnedError(f"no row in {record.table_name()!r} matched the key")
        return updated

    def insert(self, executor: Any, record: Any) -> Any:
        """
        INSERT ``record`` and return it with the database-populated columns.

        Raises:
            NoIDReturnedError: If the INSERT ... RETURNING returned no row.
        """
        row = self._run(as_executor(executor), record, "insert", insert_sql(record))
        if row is None:
            # No rows but no SQL error either.
            raise NoIDReturnedError(f"INSERT into {record.table_name()!r} returned no row")
        return decode_row(record, row)

    def get(self, executor: Any, record: Any) -> Any | None:
        """
        Fetch the stored row matching ``record``'s key, or None.
        """
        row = self._run(as_executor(executor), record, "select", select_sql(record))
        if row is None:
            return None
        return decode_row(record, row)

    def delete(self, executor: Any, record: Any) -> int:
        """
        DELETE the rows matching ``record``'s key and return the affected row count.
        """
        return self._run(as_executor(executor), record, "delete", delete_sql(record), fetch=False)


_default = Upserter()


def upsert(executor: Any, record: Any) -> UpsertResult:
    return _default.upsert(executor, record)


def upsert_tx(engine: Engine | DbFactory, record: Any) -> UpsertResult:
    return _default.upsert_tx(engine, record)


def update(executor: Any, record: Any) -> Any:
    return _default.update(executor, record)


def insert(executor: Any, record: Any) -> Any:
    return _default.insert(executor, record)


def get(executor: Any, record: Any) -> Any | None:
    return _default.get(executor, record)


def delete(executor: Any, record: Any) -> int:
    return _default.delete(executor, record)
