from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from sqlalchemy.engine import Engine, Connection
from sqlalchemy.sql.elements import TextClause

from .session import ConnectionExecutor

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """
    Anything that can run the generated statements.

    DbSession, DbTransaction and ConnectionExecutor all satisfy this, so a
    plain connection and an open transaction are interchangeable.
    """

    def execute(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> int:
        """Execute a statement returning no rows and return affected row count."""
        ...

    def fetch_first(
        self,
        sql: str | TextClause,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Execute a statement and return its first row, or None."""
        ...


@runtime_checkable
class DbTx(Executor, Protocol):
    """
    An executor with explicit commit/rollback.

    Used by the transactional upsert, which owns the commit/rollback decision.
    """

    def commit(self) -> None:
        """Commit the transaction."""
        ...

    def rollback(self) -> None:
        """Rollback the transaction."""
        ...


class DbTransaction(ConnectionExecutor):
    """
    Database transaction with explicit commit/rollback methods.

    This class provides the same SQL execution interface as DbSession
    but with explicit commit() and rollback() methods instead of
    context manager semantics.

    The transaction begins on construction and must be explicitly
    committed or rolled back. After commit or rollback, the connection
    is closed and the transaction cannot be used again.

    Usage:
        factory = DbFactory(engine)
        tx = factory.begin()
        try:
            upsert(tx, record)
            tx.commit()
        except Exception:
            tx.rollback()
            raise
    """

    def __init__(self, engine: Engine) -> None:
        """
        Initialize and begin a new transaction.

        Args:
            engine: SQLAlchemy Engine instance
        """
        super().__init__(None)
        self.engine = engine
        self._tx = None
        self._closed = False

        # Begin transaction immediately
        self._conn = self.engine.connect()
        try:
            self._tx = self._conn.begin()
        except Exception:
            self._conn.close()
            raise

    def _connection(self) -> Connection:
        """Get the active connection, raising if closed."""
        if self._closed or self._conn is None:
            raise RuntimeError("Transaction is already closed")
        return self._conn

    def _close(self) -> None:
        self._closed = True
        if self._conn is not None:
            self._conn.close()

        self._conn = None
        self._tx = None

    def commit(self) -> None:
        """
        Commit the transaction and close the connection.

        Raises:
            RuntimeError: If transaction is already closed
        """
        if self._closed:
            raise RuntimeError("Transaction is already closed")

        try:
            if self._tx is not None:
                self._tx.commit()
        except Exception:
            # Best-effort rollback on commit failure; the commit error wins.
            try:
                if self._tx is not None:
                    self._tx.rollback()
            except Exception:
                logger.warning("rollback after failed commit also failed", exc_info=True)
            raise
        finally:
            self._close()

    def rollback(self) -> None:
        """
        Rollback the transaction and close the connection.

        Raises:
            RuntimeError: If transaction is already closed
        """
        if self._closed:
            raise RuntimeError("Transaction is already closed")

        try:
            if self._tx is not None:
                self._tx.rollback()
        finally:
            self._close()


class DbFactory:
    """
    Factory for creating database transactions.

    Usage:
        factory = DbFactory(engine)
        result = Upserter().upsert_tx(factory, record)
    """

    def __init__(self, engine: Engine) -> None:
        """
        Initialize the factory with a SQLAlchemy Engine.

        Args:
            engine: SQLAlchemy Engine instance
        """
        self.engine = engine

    def begin(self) -> DbTransaction:
        """
        Begin a new transaction.

        Returns:
            A new DbTransaction instance with an active transaction
        """
        return DbTransaction(self.engine)
