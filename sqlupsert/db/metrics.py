from ..metrics.registry import (
    UPSERT_OUTCOME_TOTAL,
    UPSERT_STATEMENT_LATENCY_SECONDS,
    UPSERT_STATEMENT_TOTAL,
)


def observe_statement(table: str, op_type: str, status: str, latency_s: float) -> None:
    """
    Record one executed statement.

    status is "success" or "error"; latency is only recorded on success.
    """
    UPSERT_STATEMENT_TOTAL.labels(table=table, op_type=op_type, status=status).inc()
    if status == "success":
        UPSERT_STATEMENT_LATENCY_SECONDS.labels(table=table, op_type=op_type).observe(latency_s)


def observe_outcome(table: str, outcome: str) -> None:
    UPSERT_OUTCOME_TOTAL.labels(table=table, outcome=outcome).inc()
