from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

Tx = TypeVar("Tx", contravariant=True)


@runtime_checkable
class WorkItem(Protocol[Tx]):
    """A domain object that knows how to persist itself using a transaction
    handle. Each method is awaited once per commit cycle it is marked in."""

    async def create_by_tx(self, tx: Tx) -> None: ...

    async def update_by_tx(self, tx: Tx) -> None: ...

    async def delete_by_tx(self, tx: Tx) -> None: ...


@runtime_checkable
class WorkScope(Protocol):
    """Declares and flushes a batch of work"""

    def begin_work(self) -> None: ...

    async def commit_work(self) -> None: ...
