from .config import UpsertConfig
from .db.models import Outcome, UpsertResult
from .db.session import DbSession
from .db.tags import Role, column
from .db.tx import DbFactory, DbTransaction
from .db.upserter import Upserter, delete, get, insert, update, upsert, upsert_tx

__all__ = [
    "DbFactory",
    "DbSession",
    "DbTransaction",
    "Outcome",
    "Role",
    "UpsertConfig",
    "UpsertResult",
    "Upserter",
    "column",
    "delete",
    "get",
    "insert",
    "update",
    "upsert",
    "upsert_tx",
]
