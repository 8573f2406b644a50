from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

Tx = TypeVar("Tx")


class TransactionResource(ABC, Generic[Tx]):
    """The transactional backend a unit of work flushes into.

    A resource decides what a transaction handle is (a connection, a
    session, a cursor...) and how it is opened and finalized. The unit of
    work never inspects the handle, it only threads it through every call
    made within one commit cycle.

    Example:

    ```python
    class MemoryResource(TransactionResource[dict]):
        async def begin(self) -> dict:
            return {}

        async def commit(self, tx: dict) -> None:
            self.data.update(tx)

        async def rollback(self, tx: dict) -> None:
            tx.clear()
    ```
    """

    @abstractmethod
    async def begin(self) -> Tx:
        """Open a new transaction

        Returns:
            Tx: The handle passed to every later call of the same cycle
        """

    @abstractmethod
    async def commit(self, tx: Tx) -> None:
        """Commit a transaction

        Args:
            tx (Tx): The handle returned by `begin`
        """

    @abstractmethod
    async def rollback(self, tx: Tx) -> None:
        """Rollback a transaction

        Args:
            tx (Tx): The handle returned by `begin`
        """

    async def release(self, tx: Tx) -> None:
        """Release resources held by a transaction. Called exactly once per
        cycle, after either `commit` or `rollback`. Override if needed.

        Args:
            tx (Tx): The handle returned by `begin`
        """

    async def open(self) -> None:
        """Prepare the resource (open pools, connections)"""

    async def close(self) -> None:
        """Dispose of the resource"""
