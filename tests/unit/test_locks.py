"""Unit tests for keyed asyncio locks with bounded retry."""

import asyncio

import pytest

from src.nb_common.errors import LockContentionError
from src.nb_common.locks import KeyedLocks


class TestKeyedLocks:
    async def test_same_key_serializes(self) -> None:
        locks = KeyedLocks("t", timeout=1.0, max_attempts=1, backoff=0)
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("acct-1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    async def test_different_keys_do_not_block(self) -> None:
        locks = KeyedLocks("t", timeout=0.05, max_attempts=1, backoff=0)
        async with locks.hold("acct-1"):
            async with locks.hold("acct-2"):
                assert locks.is_locked("acct-1")
                assert locks.is_locked("acct-2")

    async def test_contention_raises_after_max_attempts(self) -> None:
        locks = KeyedLocks("t", timeout=0.01, max_attempts=2, backoff=0)
        async with locks.hold("acct-1"):
            with pytest.raises(LockContentionError) as exc:
                async with locks.hold("acct-1"):
                    pass
        assert exc.value.code == 9003
        assert exc.value.http_status == 503

    async def test_released_after_exception(self) -> None:
        locks = KeyedLocks("t", timeout=0.05, max_attempts=1, backoff=0)
        with pytest.raises(RuntimeError):
            async with locks.hold("acct-1"):
                raise RuntimeError("boom")
        assert not locks.is_locked("acct-1")

    def test_max_attempts_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            KeyedLocks("t", max_attempts=0)

    async def test_idle_keys_are_evicted(self) -> None:
        locks = KeyedLocks("t", timeout=0.05, max_attempts=1, backoff=0)
        for n in range(100):
            async with locks.hold(f"acct-{n}"):
                assert f"acct-{n}" in locks
        assert "acct-0" not in locks
        assert "acct-99" not in locks
        assert locks  # an empty registry must stay truthy for `locks or default`

    async def test_waiter_keeps_lock_alive(self) -> None:
        locks = KeyedLocks("t", timeout=1.0, max_attempts=1, backoff=0)
        entered = asyncio.Event()
        release = asyncio.Event()
        order: list[str] = []

        async def first() -> None:
            async with locks.hold("acct-1"):
                entered.set()
                await release.wait()
                order.append("first")

        async def second() -> None:
            await entered.wait()
            async with locks.hold("acct-1"):
                order.append("second")

        task_a = asyncio.create_task(first())
        task_b = asyncio.create_task(second())
        await entered.wait()
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(task_a, task_b)

        assert order == ["first", "second"]
        assert "acct-1" not in locks
