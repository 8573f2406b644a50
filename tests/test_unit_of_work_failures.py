"""
Failure handling of the commit cycle: which hooks run, which error
surfaces, and what state is left behind.
"""

import asyncio
import logging

import pytest


def names(calls):
    return [name for name, _, _ in calls.mock_calls]


async def test_begin_failure_skips_rollback_and_release(
    uow, item, resource
):
    error = ConnectionError("database is down")
    resource.begin.side_effect = error

    uow.begin_work()
    await uow.create(item)

    with pytest.raises(ConnectionError) as excinfo:
        await uow.commit_work()

    assert excinfo.value is error
    item.create_by_tx.assert_not_awaited()
    resource.rollback.assert_not_awaited()
    resource.release.assert_not_awaited()


async def test_begin_failure_keeps_pending_work(uow, item, resource, tx):
    resource.begin.side_effect = [ConnectionError("database is down"), tx]

    uow.begin_work()
    await uow.create(item)
    with pytest.raises(ConnectionError):
        await uow.commit_work()

    assert uow.is_active
    assert uow.pending.creates == [item]

    await uow.commit_work()

    item.create_by_tx.assert_awaited_once_with(tx)
    assert not uow.pending


async def test_commit_failure_rolls_back(uow, item, resource, calls, tx):
    error = RuntimeError("could not serialize access")
    resource.commit.side_effect = error

    uow.begin_work()
    await uow.create(item)

    with pytest.raises(RuntimeError) as excinfo:
        await uow.commit_work()

    assert excinfo.value is error
    resource.rollback.assert_awaited_once_with(tx)
    resource.release.assert_awaited_once_with(tx)
    assert names(calls)[-3:] == ["commit", "rollback", "release"]
    assert not uow.pending


async def test_rollback_failure_does_not_replace_original_error(
    uow, item, resource, tx, caplog
):
    error = RuntimeError("An error occurs while creating")
    item.create_by_tx.side_effect = error
    resource.rollback.side_effect = RuntimeError("connection lost")

    uow.begin_work()
    await uow.create(item)

    with caplog.at_level(logging.CRITICAL, logger="workunit"):
        with pytest.raises(RuntimeError) as excinfo:
            await uow.commit_work()

    assert excinfo.value is error
    resource.release.assert_awaited_once_with(tx)
    assert not uow.pending
    assert not uow.is_active
    assert "connection lost" in caplog.text


async def test_release_failure_after_failed_cycle_keeps_original_error(
    uow, item, resource
):
    error = RuntimeError("An error occurs while deleting")
    item.delete_by_tx.side_effect = error
    resource.release.side_effect = OSError("pool closed")

    uow.begin_work()
    await uow.delete(item)

    with pytest.raises(RuntimeError) as excinfo:
        await uow.commit_work()

    assert excinfo.value is error
    assert not uow.pending


async def test_release_failure_after_successful_cycle_propagates(
    uow, item, resource
):
    resource.release.side_effect = OSError("pool closed")

    uow.begin_work()
    await uow.create(item)

    with pytest.raises(OSError, match="pool closed"):
        await uow.commit_work()

    resource.commit.assert_awaited_once()
    resource.rollback.assert_not_awaited()
    assert not uow.pending
    assert not uow.is_active


async def test_failing_phase_waits_for_other_actions(uow, make_item, tx):
    settled = []
    slow, failing = make_item("slow"), make_item("failing")

    async def slow_create(tx):
        await asyncio.sleep(0.01)
        settled.append("slow")

    slow.create_by_tx.side_effect = slow_create
    failing.create_by_tx.side_effect = ValueError("duplicate key")

    uow.begin_work()
    await uow.create(slow)
    await uow.create(failing)

    with pytest.raises(ValueError, match="duplicate key"):
        await uow.commit_work()

    assert settled == ["slow"]
    slow.update_by_tx.assert_not_awaited()


async def test_earliest_failure_is_raised(uow, make_item):
    late, early = make_item("late"), make_item("early")

    async def fail_late(tx):
        await asyncio.sleep(0.01)
        raise ValueError("late")

    late.update_by_tx.side_effect = fail_late
    early.update_by_tx.side_effect = ValueError("early")

    uow.begin_work()
    await uow.update(late)
    await uow.update(early)

    with pytest.raises(ValueError, match="early"):
        await uow.commit_work()


async def test_failure_is_logged(uow, item, caplog):
    item.create_by_tx.side_effect = RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="workunit"):
        with pytest.raises(RuntimeError):
            await uow.create(item)

    assert "rolling back" in caplog.text


async def test_cancelled_cycle_rolls_back_and_releases(
    uow, item, resource, calls, tx
):
    started = asyncio.Event()

    async def slow_create(tx):
        started.set()
        await asyncio.sleep(10)

    item.create_by_tx.side_effect = slow_create

    uow.begin_work()
    await uow.create(item)
    task = asyncio.create_task(uow.commit_work())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    resource.commit.assert_not_awaited()
    resource.rollback.assert_awaited_once_with(tx)
    resource.release.assert_awaited_once_with(tx)
    assert names(calls)[-2:] == ["rollback", "release"]
    assert not uow.pending
    assert not uow.is_active


async def test_item_queued_after_begin_failure_is_flushed_by_next_mark(
    uow, make_item, resource, tx
):
    failed, later = make_item("failed"), make_item("later")
    resource.begin.side_effect = [ConnectionError("database is down"), tx]

    with pytest.raises(ConnectionError):
        await uow.create(failed)
    await uow.create(later)

    failed.create_by_tx.assert_awaited_once_with(tx)
    later.create_by_tx.assert_awaited_once_with(tx)


async def test_discard_after_begin_failure_drops_item(
    uow, make_item, resource, tx
):
    failed, later = make_item("failed"), make_item("later")
    resource.begin.side_effect = [ConnectionError("database is down"), tx]

    with pytest.raises(ConnectionError):
        await uow.create(failed)
    uow.discard_work()
    await uow.create(later)

    failed.create_by_tx.assert_not_awaited()
    later.create_by_tx.assert_awaited_once_with(tx)
