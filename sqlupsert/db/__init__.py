from .detect import detect_change
from .models import ColumnSpec, Detection, Outcome, Presence, UpsertResult
from .schema import TableSchema, Upsertable, decode_row, record_params, table_schema
from .session import ConnectionExecutor, DbSession
from .tags import Role, column
from .tx import DbFactory, DbTransaction, DbTx, Executor
from .upserter import Upserter, delete, get, insert, update, upsert, upsert_tx

__all__ = [
    "ColumnSpec",
    "ConnectionExecutor",
    "DbFactory",
    "DbSession",
    "DbTransaction",
    "DbTx",
    "Detection",
    "Executor",
    "Outcome",
    "Presence",
    "Role",
    "TableSchema",
    "Upserter",
    "Upsertable",
    "UpsertResult",
    "column",
    "decode_row",
    "delete",
    "detect_change",
    "get",
    "insert",
    "record_params",
    "table_schema",
    "update",
    "upsert",
    "upsert_tx",
]
