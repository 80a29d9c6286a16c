"""Core data models — shared Pydantic types for the speakcoach service.

Every lesson session, quota row, conversation turn and API response flows
through these types. They are the shared vocabulary between the lesson
engine, the storage hooks and the HTTP layer.

Leaf module: imports only from pydantic and the stdlib.
No project imports allowed — everything else imports from here.

Usage:
    from speakcoach.schemas import Phase, Session, ConversationTurn, ApiResponse
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Lesson state
# ---------------------------------------------------------------------------


class Phase(str, Enum):
    """One step of the scripted lesson."""

    WARMUP = "warmup"
    TOPIC_INTRO = "topic_intro"
    GUIDED_QUESTIONS = "guided_questions"
    CORRECTION = "correction"
    EXPANSION = "expansion"
    WRAPUP = "wrapup"


class Session(BaseModel):
    """Per-identity lesson state, kept in process memory.

    Created lazily on the first chat turn and reset in place when a wrap-up
    completes. Mutated only by the phase engine's advance().

    question_index is meaningful only during guided_questions and never
    exceeds the topic's question count.
    """

    identity: str
    phase: Phase = Phase.WARMUP
    topic: str
    question_index: int = Field(default=0, ge=0)
    lessons_completed: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Conversation history (caller-owned)
# ---------------------------------------------------------------------------


class ConversationTurn(BaseModel):
    """One prior exchange supplied by the caller. Never persisted here."""

    model_config = ConfigDict(frozen=True)

    user: str | None = None
    bot: str | None = None


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


class QuotaRecord(BaseModel):
    """Accumulated practice seconds for one identity on one UTC day."""

    model_config = ConfigDict(frozen=True)

    identity: str
    day: str  # ISO YYYY-MM-DD
    seconds: float = 0.0


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------


class ApiError(BaseModel):
    """Error detail inside ApiResponse.error.

    code is an uppercase string like "AI_UNAVAILABLE", "QUOTA_UNAVAILABLE".
    Not an enum — error codes grow with the service.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ApiResponse(BaseModel):
    """Envelope for errors and auxiliary endpoints."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    data: Any | None = None
    error: ApiError | None = None
