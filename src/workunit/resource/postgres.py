from __future__ import annotations

import logging
from typing import Optional

from workunit.base.resource import TransactionResource
from workunit.exception import WorkUnitError

from .interfaces import (
    ConnectionIsolationError,
    IsolationLevel,
    TransactionError,
)

try:
    from psycopg import AsyncConnection
    from psycopg_pool import AsyncConnectionPool

    POSTGRES_ENABLED = True
except ModuleNotFoundError:
    POSTGRES_ENABLED = False
    AsyncConnection = type("Connection", (), {})  # type: ignore
    AsyncConnectionPool = type("Connection", (), {})  # type: ignore

logger = logging.getLogger(__name__)


class PostgresResource(TransactionResource[AsyncConnection]):
    """Transaction resource backed by a psycopg connection pool.

    Every transaction runs on its own pooled connection, which is the
    transaction handle passed to work items.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        *,
        pool: Optional[AsyncConnectionPool] = None,
        isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED,
        timeout: Optional[float] = None,
        min_size: int = 1,
        max_size: Optional[int] = None,
    ) -> None:
        """Initializer for PostgresResource

        The `dsn` and the `pool` are mutually exclusive. When a `pool` is
        passed it is used as is and its lifecycle stays with the caller.

        Args:
            dsn (str, optional): DSN to the database. Defaults to `None`.
            pool (AsyncConnectionPool, optional): Existing connection pool.
                Defaults to `None`.
            isolation_level (IsolationLevel, optional): Isolation level of
                every transaction. Defaults to `READ_COMMITTED`.
            timeout (float, optional): Seconds to wait for a free
                connection. Defaults to `None`.
            min_size (int, optional): Minimum number of connections in the
                pool. Defaults to 1.
            max_size (int, optional): Maximum number of connections in the
                pool. Defaults to `None`.

        Raises:
            WorkUnitError: If the driver is missing or the data source is
                conflicting or absent
        """
        if not POSTGRES_ENABLED:
            raise WorkUnitError(
                "Postgres driver not found. Try reinstalling workunit: "
                "pip install workunit[postgres]"
            )
        if pool and dsn:
            raise WorkUnitError("Conflict with pool and DSN")
        if not pool and not dsn:
            raise WorkUnitError("Either a pool or a DSN is required")

        self._owns_pool = pool is None
        self._pool = pool or AsyncConnectionPool(
            dsn, min_size=min_size, max_size=max_size, open=False
        )
        self._opened = not self._owns_pool
        self.isolation_level = isolation_level
        self.timeout = timeout

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.isolation_level.value}>"

    async def open(self) -> None:
        """Open connections to the pool"""
        if self._owns_pool and not self._opened:
            await self._pool.open()
        self._opened = True

    async def close(self) -> None:
        """Close connections to the pool"""
        if self._owns_pool and self._opened:
            await self._pool.close()
        self._opened = False

    async def begin(self) -> AsyncConnection:
        if not self._opened:
            await self.open()

        try:
            conn = await self._pool.getconn(timeout=self.timeout)
        except Exception as e:
            raise ConnectionIsolationError(
                f"Failed to get connection for transaction: {e}"
            ) from e

        try:
            await conn.execute(
                "SET TRANSACTION ISOLATION LEVEL "
                f"{self.isolation_level.value}"
            )
        except Exception as e:
            await self._pool.putconn(conn)
            raise TransactionError(f"Failed to begin transaction: {e}") from e
        except BaseException:
            await self._pool.putconn(conn)
            raise

        logger.debug("Began transaction on %s", conn)
        return conn

    async def commit(self, tx: AsyncConnection) -> None:
        try:
            await tx.commit()
        except Exception as e:
            raise TransactionError(
                f"Failed to commit transaction: {e}"
            ) from e

    async def rollback(self, tx: AsyncConnection) -> None:
        try:
            await tx.rollback()
        except Exception as e:
            raise TransactionError(
                f"Failed to rollback transaction: {e}"
            ) from e

    async def release(self, tx: AsyncConnection) -> None:
        await self._pool.putconn(tx)
        logger.debug("Returned %s to the pool", tx)
