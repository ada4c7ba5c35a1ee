"""Unit tests for per-user locking"""
import asyncio
import pytest

from progression_engine.gamification.locks import UserLockRegistry


@pytest.mark.asyncio
async def test_lock_is_reentrant_within_task():
    locks = UserLockRegistry()

    async with locks.hold("u1"):
        async with locks.hold("u1"):
            assert locks.is_held("u1")
        assert locks.is_held("u1")

    assert not locks.is_held("u1")


@pytest.mark.asyncio
async def test_same_user_serialized():
    locks = UserLockRegistry()
    order = []

    async def worker(name):
        async with locks.hold("u1"):
            order.append(f"{name}-start")
            await asyncio.sleep(0.01)
            order.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )


@pytest.mark.asyncio
async def test_different_users_do_not_contend():
    locks = UserLockRegistry()
    entered = asyncio.Event()

    async def hold_u1():
        async with locks.hold("u1"):
            await entered.wait()

    task = asyncio.create_task(hold_u1())
    await asyncio.sleep(0)

    async with locks.hold("u2"):
        entered.set()

    await asyncio.wait_for(task, timeout=1.0)
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_idle_locks_are_released():
    locks = UserLockRegistry()

    for i in range(100):
        async with locks.hold(f"user-{i}"):
            assert len(locks) == 1

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_kept_while_waiters_remain():
    locks = UserLockRegistry()
    sizes = []

    async def worker():
        async with locks.hold("u1"):
            await asyncio.sleep(0.01)
            sizes.append(len(locks))

    await asyncio.gather(worker(), worker(), worker())

    assert sizes == [1, 1, 1]
    assert len(locks) == 0
    assert not locks.is_held("u1")


@pytest.mark.asyncio
async def test_lock_released_after_error():
    locks = UserLockRegistry()

    with pytest.raises(RuntimeError):
        async with locks.hold("u1"):
            raise RuntimeError("boom")

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_cancelled_waiter_is_released():
    locks = UserLockRegistry()
    release = asyncio.Event()

    async def holder():
        async with locks.hold("u1"):
            await release.wait()

    async def waiter():
        async with locks.hold("u1"):
            pass

    held = asyncio.create_task(holder())
    await asyncio.sleep(0)
    waiting = asyncio.create_task(waiter())
    await asyncio.sleep(0)
    waiting.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiting

    release.set()
    await held
    assert len(locks) == 0
