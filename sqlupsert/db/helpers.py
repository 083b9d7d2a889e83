from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ExecutionError
from .metrics import observe_statement
from .session import ConnectionExecutor
from .tx import Executor

logger = logging.getLogger(__name__)


def as_executor(target: Any) -> Executor:
    """
    Accept a bare SQLAlchemy Connection wherever an Executor is expected.

    Raises:
        TypeError: If given an Engine; a plain upsert needs a connection or an
            open transaction (use DbSession, or upsert_tx for a managed one).
    """
    if isinstance(target, Engine):
        raise TypeError(
            "an Engine is not an executor; pass a Connection, DbSession or "
            "DbTransaction, or use upsert_tx() to let sqlupsert open a transaction"
        )
    if isinstance(target, Connection):
        return ConnectionExecutor(target)
    return target


def run_statement(
    executor: Executor,
    *,
    table: str,
    op_type: str,
    sql: str,
    params: Mapping[str, Any],
    fetch: bool = True,
    long_query_s: float = 0.0,
    error_cls: type[ExecutionError] = ExecutionError,
) -> Any:
    """
    Run one generated statement exactly once.

    With ``fetch`` the first returned row (or None) is returned, otherwise the
    affected row count. SQLAlchemy errors are re-raised as ``error_cls`` with
    the original chained; nothing is retried.
    """
    start_time = time.monotonic()
    status = "success"

    try:
        if fetch:
            return executor.fetch_first(sql, params)
        return executor.execute(sql, params)
    except SQLAlchemyError as exc:
        status = "error"
        raise error_cls(op_type, sql, exc) from exc
    except Exception:
        status = "error"
        raise
    finally:
        latency = time.monotonic() - start_time
        observe_statement(table, op_type, status, latency)
        logger.debug("%s on %s (%s, %.4fs): %s", op_type, table, status, latency, sql)
        if long_query_s and latency > long_query_s:
            logger.warning(
                "Slow %s on %s took %.3fs (threshold %.3fs): %s",
                op_type,
                table,
                latency,
                long_query_s,
                sql,
            )
