"""In-memory session store — default SessionStore.

Python dict-backed storage for lesson sessions. Data lives only in memory
and is lost on restart, which matches the lesson engine's contract: a
restarted learner simply begins a fresh lesson at warmup.

Imports from speakcoach.hooks.interfaces and speakcoach.schemas.

Usage:
    from speakcoach.hooks.sessions import InMemorySessionStore

    sessions = InMemorySessionStore()
    await sessions.save_session(session)
    await sessions.get_session("u1")
"""

from speakcoach.hooks.interfaces import SessionStore
from speakcoach.schemas import Session


class InMemorySessionStore(SessionStore):
    """Dict-backed session storage, keyed by identity."""

    def __init__(self) -> None:
        """Initialises empty session store."""
        self._sessions: dict[str, Session] = {}

    async def get_session(self, identity: str) -> Session | None:
        """Retrieves a session, or None if the identity has none."""
        return self._sessions.get(identity)

    async def save_session(self, session: Session) -> None:
        """Stores a session under its identity. Creates or overwrites."""
        self._sessions[session.identity] = session

    async def delete_session(self, identity: str) -> None:
        """Deletes a session. No-op if not found (idempotent)."""
        self._sessions.pop(identity, None)

    def __len__(self) -> int:
        return len(self._sessions)
