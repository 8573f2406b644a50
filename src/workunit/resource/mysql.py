from __future__ import annotations

import logging
from inspect import isawaitable
from typing import Any, Optional

from workunit.base.resource import TransactionResource
from workunit.exception import WorkUnitError

from .interfaces import (
    ConnectionIsolationError,
    IsolationLevel,
    TransactionError,
)

try:
    from asyncmy import Connection, create_pool

    MYSQL_ENABLED = True
except ModuleNotFoundError:
    MYSQL_ENABLED = False
    Connection = type("Connection", (), {})  # type: ignore

logger = logging.getLogger(__name__)


class MysqlResource(TransactionResource[Connection]):
    """Transaction resource backed by an asyncmy connection pool"""

    def __init__(
        self,
        *,
        pool: Optional[Any] = None,
        host: str = "localhost",
        port: int = 3306,
        user: Optional[str] = None,
        password: Optional[str] = None,
        db: Optional[str] = None,
        isolation_level: IsolationLevel = IsolationLevel.REPEATABLE_READ,
        min_size: int = 1,
        max_size: int = 10,
    ) -> None:
        """Initializer for MysqlResource

        Args:
            pool (asyncmy.Pool, optional): Existing, already created pool.
                Connection arguments are ignored when passed.
                Defaults to `None`.
            host (str, optional): DB address. Defaults to `"localhost"`.
            port (int, optional): DB port. Defaults to 3306.
            user (str, optional): DB user. Defaults to `None`.
            password (str, optional): DB password. Defaults to `None`.
            db (str, optional): DB name. Defaults to `None`.
            isolation_level (IsolationLevel, optional): Isolation level of
                every transaction. Defaults to `REPEATABLE_READ`.
            min_size (int, optional): Minimum number of connections in pool.
                Defaults to 1.
            max_size (int, optional): Maximum number of connections in pool.
                Defaults to 10.

        Raises:
            WorkUnitError: If the driver is missing or an argument is invalid
        """
        if not MYSQL_ENABLED:
            raise WorkUnitError(
                "MySQL driver not found. Try reinstalling workunit: "
                "pip install workunit[mysql]"
            )
        if not isinstance(port, int) or port not in range(0, 65536):
            raise WorkUnitError("port: must be an integer between 0 and 65535")
        if password is not None and (
            not isinstance(password, str) or not len(password) > 0
        ):
            raise WorkUnitError(
                "password: must be a string at least 1 character long"
            )

        self._owns_pool = pool is None
        self._pool = pool
        self._connect_kwargs = {
            "host": host,
            "port": port,
            "user": user,
            "password": password,
            "db": db,
            "minsize": min_size,
            "maxsize": max_size,
        }
        self.isolation_level = isolation_level

    async def open(self) -> None:
        """Create the pool"""
        if self._pool is None:
            self._pool = await create_pool(**self._connect_kwargs)

    async def close(self) -> None:
        """Close connections to the pool"""
        if self._owns_pool and self._pool is not None:
            self._pool.close()
            await self._pool.wait_closed()
            self._pool = None

    async def begin(self) -> Connection:
        await self.open()

        try:
            conn = await self._pool.acquire()
        except Exception as e:
            raise ConnectionIsolationError(
                f"Failed to get connection for transaction: {e}"
            ) from e

        try:
            async with conn.cursor() as cursor:
                await cursor.execute(
                    "SET TRANSACTION ISOLATION LEVEL "
                    f"{self.isolation_level.value}"
                )
            await conn.begin()
        except Exception as e:
            await self._give_back(conn)
            raise TransactionError(f"Failed to begin transaction: {e}") from e
        except BaseException:
            await self._give_back(conn)
            raise

        logger.debug("Began transaction on %s", conn)
        return conn

    async def commit(self, tx: Connection) -> None:
        try:
            await tx.commit()
        except Exception as e:
            raise TransactionError(
                f"Failed to commit transaction: {e}"
            ) from e

    async def rollback(self, tx: Connection) -> None:
        try:
            await tx.rollback()
        except Exception as e:
            raise TransactionError(
                f"Failed to rollback transaction: {e}"
            ) from e

    async def release(self, tx: Connection) -> None:
        await self._give_back(tx)
        logger.debug("Returned %s to the pool", tx)

    async def _give_back(self, conn: Connection) -> None:
        released = self._pool.release(conn)
        if isawaitable(released):
            await released
