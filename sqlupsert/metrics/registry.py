from prometheus_client import Counter, Histogram

UPSERT_STATEMENT_TOTAL = Counter(
    "sqlupsert_statements_total",
    "Generated statements executed, by table, operation and status",
    ["table", "op_type", "status"],
)

UPSERT_STATEMENT_LATENCY_SECONDS = Histogram(
    "sqlupsert_statement_latency_seconds",
    "Latency of generated statements in seconds",
    ["table", "op_type"],
)

UPSERT_OUTCOME_TOTAL = Counter(
    "sqlupsert_outcomes_total",
    "Upsert outcomes (inserted, updated, no_change), by table",
    ["table", "outcome"],
)
