"""Tests for speakcoach.ai.providers.retry — shared provider backoff."""

from unittest.mock import AsyncMock, patch

import pytest

from speakcoach.ai.providers.retry import MAX_RETRIES, with_retries


class _Transient(Exception):
    pass


class _Fatal(Exception):
    pass


def _flaky(failures: list[Exception], result: str = "ok"):
    """Returns a call factory that raises each failure once, then succeeds."""
    remaining = list(failures)
    calls = {"n": 0}

    async def _call() -> str:
        calls["n"] += 1
        if remaining:
            raise remaining.pop(0)
        return result

    return _call, calls


def _retry(call, **kwargs):
    return with_retries(
        "test",
        call,
        retry_on=(_Transient, _Fatal),
        is_retryable=lambda exc: isinstance(exc, _Transient),
        **kwargs,
    )


class TestWithRetries:
    @pytest.mark.asyncio
    async def test_first_try_success(self) -> None:
        call, calls = _flaky([])
        assert await _retry(call) == "ok"
        assert calls["n"] == 1

    @pytest.mark.asyncio
    async def test_backoff_doubles(self) -> None:
        call, calls = _flaky([_Transient(), _Transient()])
        with patch("speakcoach.ai.providers.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await _retry(call) == "ok"
        assert calls["n"] == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        call, calls = _flaky([_Transient()] * 5)
        with patch("speakcoach.ai.providers.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(_Transient):
                await _retry(call)
        assert calls["n"] == MAX_RETRIES + 1

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self) -> None:
        call, calls = _flaky([_Fatal()])
        with pytest.raises(_Fatal):
            await _retry(call)
        assert calls["n"] == 1

    @pytest.mark.asyncio
    async def test_unlisted_exceptions_propagate(self) -> None:
        call, calls = _flaky([ValueError("bug")])
        with pytest.raises(ValueError):
            await _retry(call)
        assert calls["n"] == 1

    @pytest.mark.asyncio
    async def test_zero_retries(self) -> None:
        call, _ = _flaky([_Transient()])
        with pytest.raises(_Transient):
            await _retry(call, max_retries=0)
