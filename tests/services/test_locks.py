"""Tests for the per-session lock arena."""

import asyncio

import pytest

from vanish.services.locks import SessionLocks


@pytest.mark.asyncio
async def test_hold_serializes_same_session() -> None:
    locks = SessionLocks()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold("s1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (
        ["a-in", "a-out", "b-in", "b-out"],
        ["b-in", "b-out", "a-in", "a-out"],
    )


@pytest.mark.asyncio
async def test_different_sessions_do_not_block() -> None:
    locks = SessionLocks()

    async with locks.hold("s1"):
        assert locks.locked("s1")
        async with locks.hold("s2"):
            assert locks.locked("s2")


@pytest.mark.asyncio
async def test_idle_locks_are_released() -> None:
    locks = SessionLocks()
    async with locks.hold("s1"):
        assert len(locks) == 1
    assert len(locks) == 0
    assert not locks.locked("s1")


@pytest.mark.asyncio
async def test_lock_released_on_error() -> None:
    locks = SessionLocks()
    with pytest.raises(RuntimeError):
        async with locks.hold("s1"):
            raise RuntimeError("boom")
    assert len(locks) == 0
