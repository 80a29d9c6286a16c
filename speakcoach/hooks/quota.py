"""Quota stores — in-memory and SQL implementations of QuotaStore.

InMemoryQuotaStore is the default for development and tests. SqlQuotaStore
persists rows in a ``usage`` table through SQLAlchemy (SQLite by default,
any SQLAlchemy URL in production). The SQL engine is synchronous; calls are
pushed to a worker thread so the event loop never blocks on disk.

Both stores only read and upsert absolute totals. Arithmetic and per-key
serialisation live in speakcoach.engine.quota.QuotaLedger.

Usage:
    from speakcoach.hooks.quota import InMemoryQuotaStore, SqlQuotaStore

    store = SqlQuotaStore("sqlite:///./usage.db")
    await store.put_seconds("u1", "2026-10-19", 42.5)
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import Column, Float, String, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from speakcoach.errors import QuotaStoreError
from speakcoach.hooks.interfaces import QuotaStore

logger = logging.getLogger(__name__)

Base = declarative_base()


class UsageRow(Base):
    """Accumulated practice seconds per identity per UTC day."""

    __tablename__ = "usage"

    identity = Column(String(255), primary_key=True)
    date = Column(String(10), primary_key=True)  # YYYY-MM-DD
    seconds = Column(Float, nullable=False, default=0.0)


class InMemoryQuotaStore(QuotaStore):
    """Dict-backed quota storage, keyed by (identity, day). Lost on restart."""

    def __init__(self) -> None:
        """Initialises empty in-memory rows."""
        self._rows: dict[tuple[str, str], float] = {}

    async def get_seconds(self, identity: str, day: str) -> float | None:
        """Reads the stored total, or None if the row doesn't exist."""
        return self._rows.get((identity, day))

    async def put_seconds(self, identity: str, day: str, seconds: float) -> None:
        """Overwrites the total for the key."""
        self._rows[(identity, day)] = seconds


class SqlQuotaStore(QuotaStore):
    """SQLAlchemy-backed quota storage.

    Creates the ``usage`` table on construction if it doesn't exist.

    Args:
        database_url: Any SQLAlchemy URL, e.g. "sqlite:///./usage.db".
    """

    def __init__(self, database_url: str) -> None:
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self._engine = create_engine(database_url, connect_args=connect_args, future=True)
        self._session_factory = sessionmaker(
            bind=self._engine, autoflush=False, expire_on_commit=False, future=True,
        )
        Base.metadata.create_all(self._engine)

    def _get(self, identity: str, day: str) -> float | None:
        with self._session_factory() as db:
            row = db.get(UsageRow, (identity, day))
            return None if row is None else float(row.seconds)

    def _put(self, identity: str, day: str, seconds: float) -> None:
        with self._session_factory.begin() as db:
            db.merge(UsageRow(identity=identity, date=day, seconds=seconds))

    async def get_seconds(self, identity: str, day: str) -> float | None:
        """Reads one row by primary key.

        Raises:
            QuotaStoreError: If the database call fails.
        """
        try:
            return await asyncio.to_thread(self._get, identity, day)
        except SQLAlchemyError as exc:
            raise QuotaStoreError(f"Failed to read usage for {day}: {exc}") from exc

    async def put_seconds(self, identity: str, day: str, seconds: float) -> None:
        """Upserts one row by primary key.

        Raises:
            QuotaStoreError: If the database call fails.
        """
        try:
            await asyncio.to_thread(self._put, identity, day, seconds)
        except SQLAlchemyError as exc:
            raise QuotaStoreError(f"Failed to write usage for {day}: {exc}") from exc
