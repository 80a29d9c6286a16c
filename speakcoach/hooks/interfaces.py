"""Hook interfaces — abstract base classes for the swappable storage services.

These ABCs define the contracts between the lesson engine and the
infrastructure layer. Each one has an in-memory implementation that lets
the service run end-to-end without real infrastructure; QuotaStore also
has a SQL implementation for production.

Leaf module: imports only from abc (stdlib) and speakcoach.schemas.
No project services, no orchestration.

To implement a real service, subclass the relevant ABC and implement every
abstract method. Python will raise TypeError at instantiation if any
method is missing.

Usage:
    from speakcoach.hooks.interfaces import QuotaStore, SessionStore
"""

from abc import ABC, abstractmethod

from speakcoach.schemas import Session


# ---------------------------------------------------------------------------
# Session storage (process lifetime)
# ---------------------------------------------------------------------------


class SessionStore(ABC):
    """Storage for per-identity lesson sessions.

    Keyed by identity (user id or client IP). The store holds Session
    objects; callers mutate a session under the orchestrator's
    per-identity lock and then save it back.
    """

    @abstractmethod
    async def get_session(self, identity: str) -> Session | None:
        """Retrieves the session for an identity.

        Args:
            identity: The learner's identity key.

        Returns:
            The Session if one exists, None otherwise. A missing session
            is normal — the orchestrator creates one.
        """
        ...

    @abstractmethod
    async def save_session(self, session: Session) -> None:
        """Creates or overwrites the session stored under session.identity.

        Args:
            session: The Session to persist.
        """
        ...

    @abstractmethod
    async def delete_session(self, identity: str) -> None:
        """Deletes a session immediately. No-op if absent (idempotent).

        Args:
            identity: The learner's identity key.
        """
        ...


# ---------------------------------------------------------------------------
# Quota storage (durable)
# ---------------------------------------------------------------------------


class QuotaStore(ABC):
    """Key-value storage for practice seconds keyed by (identity, day).

    Point read and full-value upsert only. The QuotaLedger does the
    arithmetic and serialises read-modify-write per key; the store just
    persists totals. Rows are never deleted by the service.

    Implementations wrap backend failures in QuotaStoreError.
    """

    @abstractmethod
    async def get_seconds(self, identity: str, day: str) -> float | None:
        """Reads the stored total for one identity on one day.

        Args:
            identity: The learner's identity key.
            day: ISO calendar date, "YYYY-MM-DD" (UTC).

        Returns:
            The stored seconds, or None if no row exists.
        """
        ...

    @abstractmethod
    async def put_seconds(self, identity: str, day: str, seconds: float) -> None:
        """Stores ``seconds`` as the full total for the key (upsert).

        Args:
            identity: The learner's identity key.
            day: ISO calendar date, "YYYY-MM-DD" (UTC).
            seconds: The new absolute total.
        """
        ...
