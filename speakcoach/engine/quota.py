"""Quota ledger — per-identity, per-day accumulated practice seconds.

The ledger is the only writer of quota rows. It turns the store's plain
read/upsert into an increment that cannot lose updates: every
read-modify-write for one (identity, day) key runs under that key's lock.

A missing row means zero. A failed read also degrades to zero (logged),
so a storage hiccup never blocks a learner; a failed write propagates,
because silently dropping practice time would break monotonicity.

Imports from hooks/interfaces, engine/locks, errors and schemas.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import date, datetime, timezone

from speakcoach.engine.locks import KeyedLock
from speakcoach.errors import QuotaStoreError
from speakcoach.hooks.interfaces import QuotaStore
from speakcoach.schemas import QuotaRecord

logger = logging.getLogger(__name__)

# Five minutes of practice per identity per day.
SESSION_LIMIT_SECONDS = 300.0


def utc_today() -> date:
    """Returns the current UTC calendar date."""
    return datetime.now(timezone.utc).date()


def is_admitted(seconds_used: float, limit: float = SESSION_LIMIT_SECONDS) -> bool:
    """A turn is admitted while usage is strictly below the limit."""
    return seconds_used < limit


class QuotaLedger:
    """Reads and increments practice time through a QuotaStore.

    Args:
        store: The persistence backend.
        clock: Returns today's UTC date. Injected so tests can pin the day.
    """

    def __init__(
        self,
        store: QuotaStore,
        clock: Callable[[], date] = utc_today,
    ) -> None:
        self._store = store
        self._clock = clock
        self._locks = KeyedLock()

    def today(self) -> str:
        """Today's ledger key, ISO "YYYY-MM-DD" in UTC."""
        return self._clock().isoformat()

    async def seconds_used(self, identity: str, day: str) -> float:
        """Returns accumulated seconds for the key, 0 when absent or unreadable."""
        try:
            seconds = await self._store.get_seconds(identity, day)
        except QuotaStoreError:
            logger.warning(
                "Quota read failed for %s on %s, treating as 0", identity, day, exc_info=True,
            )
            return 0.0
        return seconds or 0.0

    async def record(self, identity: str, day: str) -> QuotaRecord:
        """Snapshot of one ledger row, zero when absent."""
        return QuotaRecord(identity=identity, day=day, seconds=await self.seconds_used(identity, day))

    async def add_seconds(self, identity: str, day: str, delta: float) -> float:
        """Adds ``delta`` to the key's total and returns the new total.

        Raises:
            ValueError: If delta is negative or not finite.
            QuotaStoreError: If the store cannot read or write the row.
        """
        if not math.isfinite(delta) or delta < 0:
            raise ValueError(f"delta must be a finite non-negative number, got {delta}")

        async with self._locks((identity, day)):
            previous = await self._store.get_seconds(identity, day) or 0.0
            total = previous + delta
            await self._store.put_seconds(identity, day, total)

        logger.info(
            "Practice time for %s on %s: +%.1fs -> %.1fs", identity, day, delta, total,
        )
        return total
