"""Contract tests for QuotaStore implementations.

Verifies that any QuotaStore implementation satisfies:
- Missing rows read as None (the ledger turns that into zero)
- put_seconds stores an absolute total, overwriting the previous one
- Rows are keyed by (identity, day), with no bleed between keys

Run against registered implementations:
    python -m pytest speakcoach/tests/contracts/test_quota_contract.py -v
"""

import pytest

DAY = "2026-10-19"


class TestQuotaContract:
    """Behavioral contract for QuotaStore implementations."""

    @pytest.mark.asyncio
    async def test_missing_row_returns_none(self, quota_store) -> None:
        """A key that was never written must read as None."""
        assert await quota_store.get_seconds("nobody", DAY) is None

    @pytest.mark.asyncio
    async def test_put_then_get(self, quota_store) -> None:
        """A stored total is read back unchanged."""
        await quota_store.put_seconds("u1", DAY, 42.5)
        assert await quota_store.get_seconds("u1", DAY) == 42.5

    @pytest.mark.asyncio
    async def test_put_overwrites(self, quota_store) -> None:
        """put_seconds replaces the total; it does not add."""
        await quota_store.put_seconds("u1", DAY, 40.0)
        await quota_store.put_seconds("u1", DAY, 52.0)
        assert await quota_store.get_seconds("u1", DAY) == 52.0

    @pytest.mark.asyncio
    async def test_zero_is_stored(self, quota_store) -> None:
        """An explicit zero is a row, distinct from a missing one."""
        await quota_store.put_seconds("u1", DAY, 0.0)
        assert await quota_store.get_seconds("u1", DAY) == 0.0

    @pytest.mark.asyncio
    async def test_identities_are_isolated(self, quota_store) -> None:
        """Rows for different identities on the same day are independent."""
        await quota_store.put_seconds("u1", DAY, 10.0)
        await quota_store.put_seconds("u2", DAY, 20.0)
        assert await quota_store.get_seconds("u1", DAY) == 10.0
        assert await quota_store.get_seconds("u2", DAY) == 20.0

    @pytest.mark.asyncio
    async def test_days_are_isolated(self, quota_store) -> None:
        """A new UTC day starts with no row."""
        await quota_store.put_seconds("u1", "2026-10-18", 299.0)
        assert await quota_store.get_seconds("u1", DAY) is None
        assert await quota_store.get_seconds("u1", "2026-10-18") == 299.0

    @pytest.mark.asyncio
    async def test_fractional_seconds_preserved(self, quota_store) -> None:
        """Playback durations are fractional; totals keep their precision."""
        await quota_store.put_seconds("u1", DAY, 12.375)
        assert await quota_store.get_seconds("u1", DAY) == pytest.approx(12.375)
