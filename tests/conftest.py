from unittest.mock import AsyncMock, Mock

import pytest

from workunit import TransactionResource, UnitOfWork


class RecordingResource(TransactionResource):
    def __init__(self, tx):
        self.tx = tx
        self.begin = AsyncMock(return_value=tx)
        self.commit = AsyncMock()
        self.rollback = AsyncMock()
        self.release = AsyncMock()

    async def begin(self):  # replaced per instance
        ...

    async def commit(self, tx):
        ...

    async def rollback(self, tx):
        ...


class ItemUnitOfWork(UnitOfWork):
    async def create(self, item):
        await self._mark_create(item)

    async def update(self, item):
        await self._mark_update(item)

    async def delete(self, item):
        await self._mark_delete(item)


class Item:
    def __init__(self):
        self.create_by_tx = AsyncMock()
        self.update_by_tx = AsyncMock()
        self.delete_by_tx = AsyncMock()


@pytest.fixture
def tx():
    return object()


@pytest.fixture
def calls():
    """Parent mock recording the order of every hook and action call"""
    return Mock()


@pytest.fixture
def resource(tx, calls):
    resource = RecordingResource(tx)
    calls.attach_mock(resource.begin, "begin")
    calls.attach_mock(resource.commit, "commit")
    calls.attach_mock(resource.rollback, "rollback")
    calls.attach_mock(resource.release, "release")
    return resource


@pytest.fixture
def uow(resource):
    return ItemUnitOfWork(resource)


@pytest.fixture
def make_item(calls):
    def make_item(name="item"):
        item = Item()
        calls.attach_mock(item.create_by_tx, f"{name}.create_by_tx")
        calls.attach_mock(item.update_by_tx, f"{name}.update_by_tx")
        calls.attach_mock(item.delete_by_tx, f"{name}.delete_by_tx")
        return item

    return make_item


@pytest.fixture
def item(make_item):
    return make_item()
