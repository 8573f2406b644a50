from .interfaces import (
    ConnectionIsolationError,
    IsolationLevel,
    TransactionError,
)
from .mysql import MysqlResource
from .postgres import PostgresResource
from .sqlite import SQLiteResource

__all__ = (
    "ConnectionIsolationError",
    "IsolationLevel",
    "MysqlResource",
    "PostgresResource",
    "SQLiteResource",
    "TransactionError",
)
