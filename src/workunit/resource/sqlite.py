from __future__ import annotations

import asyncio
import logging

from workunit.base.resource import TransactionResource
from workunit.exception import WorkUnitError

from .interfaces import TransactionError

try:
    import aiosqlite

    AIOSQLITE_ENABLED = True
except ModuleNotFoundError:
    AIOSQLITE_ENABLED = False

logger = logging.getLogger(__name__)


class SQLiteResource(TransactionResource["aiosqlite.Connection"]):
    """Transaction resource backed by a single SQLite connection.

    SQLite has one writer at a time, so the connection is held by one
    transaction from `begin` until `release`. Other transactions wait.
    """

    MODES = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")

    def __init__(self, db_path: str, *, mode: str = "DEFERRED") -> None:
        """Initializer for SQLiteResource

        Args:
            db_path (str): Path to the database file, or `":memory:"`
            mode (str, optional): One of `DEFERRED`, `IMMEDIATE` or
                `EXCLUSIVE`. Defaults to `"DEFERRED"`.

        Raises:
            WorkUnitError: If the driver is missing or the mode is unknown
        """
        if not AIOSQLITE_ENABLED:
            raise WorkUnitError(
                "SQLite driver not found. Try reinstalling workunit: "
                "pip install workunit[sqlite]"
            )
        mode = mode.upper()
        if mode not in self.MODES:
            raise WorkUnitError(
                f"mode: must be one of {', '.join(self.MODES)}"
            )
        self._db_path = db_path
        self._db = None
        self._lock = asyncio.Lock()
        self.mode = mode

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self._db_path}>"

    @property
    def connection(self):
        return self._db

    async def open(self) -> None:
        """Open the connection"""
        if self._db is None:
            # Transactions are driven explicitly with BEGIN/COMMIT/ROLLBACK
            self._db = await aiosqlite.connect(
                self._db_path, isolation_level=None
            )
            self._db.row_factory = aiosqlite.Row

    async def close(self) -> None:
        """Close the connection"""
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def begin(self) -> aiosqlite.Connection:
        await self._lock.acquire()
        try:
            await self.open()
            await self._db.execute(f"BEGIN {self.mode}")
        except Exception as e:
            self._lock.release()
            raise TransactionError(f"Failed to begin transaction: {e}") from e
        except BaseException:
            self._lock.release()
            raise

        logger.debug("Began %s transaction on %s", self.mode, self)
        return self._db

    async def commit(self, tx: aiosqlite.Connection) -> None:
        try:
            await tx.execute("COMMIT")
        except Exception as e:
            raise TransactionError(
                f"Failed to commit transaction: {e}"
            ) from e

    async def rollback(self, tx: aiosqlite.Connection) -> None:
        try:
            await tx.execute("ROLLBACK")
        except Exception as e:
            raise TransactionError(
                f"Failed to rollback transaction: {e}"
            ) from e

    async def release(self, tx: aiosqlite.Connection) -> None:
        if self._lock.locked():
            self._lock.release()
