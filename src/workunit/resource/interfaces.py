from enum import Enum

from workunit.exception import WorkUnitError


class IsolationLevel(Enum):
    """SQL transaction isolation levels"""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


class TransactionError(WorkUnitError):
    """Raised when a database driver fails to drive a transaction"""

    pass


class ConnectionIsolationError(TransactionError):
    """Raised when no connection could be dedicated to a transaction"""

    pass
