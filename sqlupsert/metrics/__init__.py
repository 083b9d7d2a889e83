from .registry import (
    UPSERT_OUTCOME_TOTAL,
    UPSERT_STATEMENT_LATENCY_SECONDS,
    UPSERT_STATEMENT_TOTAL,
)

__all__ = [
    "UPSERT_OUTCOME_TOTAL",
    "UPSERT_STATEMENT_LATENCY_SECONDS",
    "UPSERT_STATEMENT_TOTAL",
]
