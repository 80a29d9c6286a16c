"""Fixtures for contract tests — one parameterized fixture per hook interface.

Each fixture yields a fresh implementation instance. Every store that
ships with speakcoach is listed in its fixture's params, so one contract
test runs against all of them.

To test a new implementation against the contracts:
    1. Add your param string (e.g., "redis") to the params list.
    2. Add an elif branch that yields your implementation instance.
    3. Run: python -m pytest speakcoach/tests/contracts/ -v

Uses @pytest_asyncio.fixture (not @pytest.fixture) for async fixture
support in strict mode.
"""

import pytest_asyncio

from speakcoach.hooks.quota import InMemoryQuotaStore, SqlQuotaStore
from speakcoach.hooks.sessions import InMemorySessionStore
from speakcoach.schemas import Phase, Session


# ---------------------------------------------------------------------------
# Interface fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(params=["memory"])
async def session_store(request):
    """Yields a SessionStore implementation."""
    if request.param == "memory":
        yield InMemorySessionStore()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def quota_store(request, tmp_path):
    """Yields a QuotaStore implementation.

    The SQL store gets a throwaway SQLite file under tmp_path.
    """
    if request.param == "memory":
        yield InMemoryQuotaStore()
    elif request.param == "sql":
        yield SqlQuotaStore(f"sqlite:///{tmp_path / 'usage.db'}")


# ---------------------------------------------------------------------------
# Helper fixtures (shared test data)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def sample_session():
    """A mid-lesson Session with non-default values for integrity assertions."""
    return Session(
        identity="learner-contract-1",
        phase=Phase.GUIDED_QUESTIONS,
        topic="food",
        question_index=2,
        lessons_completed=4,
    )
