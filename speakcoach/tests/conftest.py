"""Shared test fixtures for the lesson engine, ledger and orchestrator.

Factory-pattern fixtures that return callables accepting **overrides,
so each test builds exactly the objects it needs.

Fixtures:
    mock_provider: Factory for MockProvider instances
    make_script: Factory for small LessonScript instances
    make_session: Factory for valid Session instances
    make_ledger: Factory for QuotaLedger with a pinned UTC day
    make_orchestrator: Factory for TurnOrchestrator wired to in-memory stores
"""

import random
from datetime import date

import pytest

from speakcoach.ai.providers.mock import MockProvider
from speakcoach.engine.orchestrator import TurnOrchestrator
from speakcoach.engine.quota import QuotaLedger
from speakcoach.hooks.quota import InMemoryQuotaStore
from speakcoach.hooks.sessions import InMemorySessionStore
from speakcoach.lesson.loader import parse_script
from speakcoach.lesson.schemas import LessonScript
from speakcoach.models import MOCK_MODEL, ModelConfig
from speakcoach.schemas import Session

TEST_DAY = date(2026, 10, 19)

TRAVEL_QUESTIONS = [
    "Where did you go on your last holiday?",
    "Do you prefer the beach or the mountains?",
    "What do you always pack?",
]


# ---------------------------------------------------------------------------
# MockProvider factory
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_provider():
    """Returns a factory function for creating MockProvider instances."""

    def _make(**kwargs) -> MockProvider:
        return MockProvider(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# LessonScript factory
# ---------------------------------------------------------------------------


def build_script_data(**overrides) -> dict:
    """Builds a minimal valid script dict with a single "travel" topic."""
    data = {
        "topics": {"travel": {"questions": list(TRAVEL_QUESTIONS)}},
        "prompts": {
            "warmup": "Greet the student and ask how their day is going.",
            "expansion": "Ask the student to say more about their last answer.",
            "wrapup": "Thank the student and say goodbye.",
            "wrapup_continue": "Summarise the lesson and invite the student to keep talking.",
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_script():
    """Returns a factory function for creating LessonScript instances.

    Defaults produce one topic ("travel") with three questions.
    """

    def _make(**overrides) -> LessonScript:
        return parse_script(build_script_data(**overrides))

    return _make


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_session():
    """Returns a factory function for creating valid Session instances."""

    def _make(**overrides) -> Session:
        defaults = {"identity": "u1", "topic": "travel"}
        defaults.update(overrides)
        return Session(**defaults)

    return _make


# ---------------------------------------------------------------------------
# Ledger + orchestrator factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_ledger():
    """Returns a factory for QuotaLedger pinned to TEST_DAY."""

    def _make(store=None, day: date = TEST_DAY) -> QuotaLedger:
        return QuotaLedger(store or InMemoryQuotaStore(), clock=lambda: day)

    return _make


@pytest.fixture
def make_orchestrator(make_script, make_ledger, mock_provider):
    """Returns a factory for TurnOrchestrator with in-memory collaborators.

    Override any constructor argument via kwargs; seed 0 keeps topic
    choice repeatable.
    """

    def _make(**overrides) -> TurnOrchestrator:
        defaults = {
            "script": make_script(),
            "session_store": InMemorySessionStore(),
            "ledger": make_ledger(),
            "provider": mock_provider(),
            "model_config": ModelConfig(provider="mock", model_id=MOCK_MODEL),
            "rng": random.Random(0),
        }
        defaults.update(overrides)
        return TurnOrchestrator(**defaults)

    return _make
