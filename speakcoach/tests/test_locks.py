"""Tests for speakcoach.engine.locks — per-key asyncio locks."""

import asyncio
import gc

import pytest

from speakcoach.engine.locks import KeyedLock


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_same_lock(self) -> None:
        locks = KeyedLock()
        first = locks("u1")
        assert locks("u1") is first

    @pytest.mark.asyncio
    async def test_different_keys_different_locks(self) -> None:
        locks = KeyedLock()
        a = locks("u1")
        b = locks("u2")
        assert a is not b

    @pytest.mark.asyncio
    async def test_tuple_keys(self) -> None:
        locks = KeyedLock()
        a = locks(("u1", "2026-10-19"))
        assert locks(("u1", "2026-10-19")) is a
        assert locks(("u1", "2026-10-20")) is not a

    @pytest.mark.asyncio
    async def test_serialises_same_key(self) -> None:
        locks = KeyedLock()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks("u1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_other_keys_do_not_wait(self) -> None:
        locks = KeyedLock()
        async with locks("u1"):
            assert not locks("u2").locked()

    @pytest.mark.asyncio
    async def test_unused_locks_are_released(self) -> None:
        locks = KeyedLock()
        async with locks("u1"):
            assert len(locks) == 1
        gc.collect()
        assert len(locks) == 0
