from importlib.metadata import version

from .base.resource import TransactionResource
from .base.work_item import WorkItem, WorkScope
from .batch import PendingBatch, Phase
from .exception import WorkUnitError
from .resource.interfaces import (
    ConnectionIsolationError,
    IsolationLevel,
    TransactionError,
)
from .resource.mysql import MysqlResource
from .resource.postgres import PostgresResource
from .resource.sqlite import SQLiteResource
from .unit_of_work import UnitOfWork

__version__ = version("workunit")

__all__ = (
    "ConnectionIsolationError",
    "IsolationLevel",
    "MysqlResource",
    "PendingBatch",
    "Phase",
    "PostgresResource",
    "SQLiteResource",
    "TransactionError",
    "TransactionResource",
    "UnitOfWork",
    "WorkItem",
    "WorkScope",
    "WorkUnitError",
)
