from __future__ import annotations

import asyncio
import logging
from inspect import isawaitable
from typing import Any, Generic, List, Optional
from uuid import uuid4

from workunit.base.resource import TransactionResource, Tx
from workunit.base.work_item import WorkItem
from workunit.batch import PendingBatch, Phase
from workunit.exception import WorkUnitError

logger = logging.getLogger(__name__)

RESOURCE_HOOKS = ("begin", "commit", "rollback", "release")


class UnitOfWork(Generic[Tx]):
    """Batches create, update and delete actions and flushes them through a
    `TransactionResource` as one transaction.

    Without a declared scope every mark is flushed right away in its own
    transaction. Once `begin_work` is called, marks only accumulate until
    `commit_work` flushes all of them at once.

    Subclasses expose their own domain methods on top of the protected
    `_mark_*` operations.

    Example:

    ```python
    class OrderUnitOfWork(UnitOfWork[AsyncConnection]):
        async def create(self, order: Order) -> None:
            await self._mark_create(order)

    uow = OrderUnitOfWork(PostgresResource(dsn))
    uow.begin_work()
    await uow.create(order)
    await uow.create(invoice)
    await uow.commit_work()
    ```
    """

    def __init__(self, resource: TransactionResource[Tx]) -> None:
        """Initializer for UnitOfWork instance

        Args:
            resource (TransactionResource[Tx]): Supplies the transaction
                lifecycle hooks

        Raises:
            WorkUnitError: If the resource lacks one of the hooks
        """
        missing = [
            hook
            for hook in RESOURCE_HOOKS
            if not callable(getattr(resource, hook, None))
        ]
        if missing:
            raise WorkUnitError(
                f"{resource!r} is not a transaction resource, missing: "
                f"{', '.join(missing)}"
            )
        self._resource = resource
        self._batch = PendingBatch()
        self._active = False
        self._lock = asyncio.Lock()

    @property
    def resource(self) -> TransactionResource[Tx]:
        return self._resource

    @property
    def is_active(self) -> bool:
        """Check if a work scope has been declared"""
        return self._active

    @property
    def pending(self) -> PendingBatch:
        """Work marked but not flushed yet"""
        return self._batch

    def begin_work(self) -> None:
        """Declare a work scope: marks are held until `commit_work`"""
        self._active = True

    async def commit_work(self) -> None:
        """Flush everything marked so far in a single transaction, even if
        nothing was marked, then leave the work scope.

        Raises:
            Exception: Whatever failed while beginning the transaction, while
                running an action or while committing
        """
        await self._commit_changes()

    def discard_work(self) -> None:
        """Forget pending marks and leave the work scope without touching
        the resource"""
        if self._batch:
            logger.debug("Discarding %s", self._batch)
        self._batch = PendingBatch()
        self._active = False

    async def __aenter__(self) -> UnitOfWork[Tx]:
        self.begin_work()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.commit_work()
        else:
            self.discard_work()
        return False

    async def _mark_create(self, item: WorkItem[Tx]) -> None:
        """Queue an item to be created"""
        await self._mark(Phase.CREATE, item)

    async def _mark_update(self, item: WorkItem[Tx]) -> None:
        """Queue an item to be updated"""
        await self._mark(Phase.UPDATE, item)

    async def _mark_delete(self, item: WorkItem[Tx]) -> None:
        """Queue an item to be deleted"""
        await self._mark(Phase.DELETE, item)

    async def _mark(self, phase: Phase, item: Any) -> None:
        """Queue an item, then flush right away unless a work scope is
        declared.

        If the resource fails to begin a transaction, the item stays queued
        and is flushed by the next cycle, including one started by an
        unrelated mark. Call `discard_work` to drop it instead.

        Raises:
            WorkUnitError: If the item does not implement the action
        """
        if not callable(getattr(item, phase.method, None)):
            raise WorkUnitError(
                f"Cannot mark {item!r} for {phase.name.lower()}: "
                f"{phase.method}() is not implemented"
            )
        self._batch.add(phase, item)

        if not self._active:
            await self._commit_changes()

    async def _commit_changes(self) -> None:
        async with self._lock:
            cycle_id = f"uow_{uuid4().hex[:8]}"
            tx = await self._resource.begin()

            # Anything marked from here on belongs to the next cycle
            batch, self._batch = self._batch, PendingBatch()
            self._active = False
            logger.debug("Transaction %s began with %s", cycle_id, batch)

            error: Optional[BaseException] = None
            try:
                # Later phases may depend on rows touched by earlier ones
                for phase, items in batch.phases():
                    await self._run_phase(cycle_id, tx, phase, items)
                await self._resource.commit(tx)
                logger.info(
                    "Transaction %s committed %d action(s)",
                    cycle_id,
                    len(batch),
                )
            except BaseException as e:
                error = e
                logger.error(
                    "Transaction %s failed, rolling back: %r", cycle_id, e
                )
                await self._rollback(cycle_id, tx)
            finally:
                try:
                    await self._release(cycle_id, tx, error)
                finally:
                    batch.clear()

            if error is not None:
                raise error

    async def _run_phase(
        self, cycle_id: str, tx: Tx, phase: Phase, items: List[Any]
    ) -> None:
        if not items:
            return

        logger.debug(
            "Transaction %s running %d %s action(s)",
            cycle_id,
            len(items),
            phase.name.lower(),
        )
        failures: List[Exception] = []

        async def settle(item: Any) -> None:
            try:
                result = getattr(item, phase.method)(tx)
                if isawaitable(result):
                    await result
            except Exception as e:
                failures.append(e)

        await asyncio.gather(*(settle(item) for item in items))

        if failures:
            if len(failures) > 1:
                logger.warning(
                    "Transaction %s had %d failed %s actions",
                    cycle_id,
                    len(failures),
                    phase.name.lower(),
                )
            raise failures[0]

    async def _rollback(self, cycle_id: str, tx: Tx) -> None:
        try:
            await self._resource.rollback(tx)
            logger.debug("Transaction %s rolled back", cycle_id)
        except Exception as rollback_error:
            logger.critical(
                "Rollback of transaction %s also failed: %s",
                cycle_id,
                rollback_error,
            )

    async def _release(
        self, cycle_id: str, tx: Tx, error: Optional[BaseException]
    ) -> None:
        try:
            await self._resource.release(tx)
            logger.debug("Transaction %s released", cycle_id)
        except Exception as release_error:
            if error is None:
                raise
            logger.error(
                "Release of failed transaction %s also failed: %s",
                cycle_id,
                release_error,
            )
