"""Phase engine — the scripted lesson state machine.

Pure decision logic over a Session and the shared LessonScript:
which instruction the tutor model gets for the current phase, and which
phase comes next. No I/O, no storage; the orchestrator owns persistence
and locking.

The machine is cyclic, with no terminal state:

    warmup → topic_intro → guided_questions (one turn per question)
           → expansion → wrapup → warmup (fresh random topic) → ...

correction has an instruction template but no automatic transition leads
into it; advance() leaves it in place if a caller sets it manually.

Every Phase maps to exactly one PhaseRule in _RULES. The module-level
check below fails at import time if a Phase member is added without a rule.

Usage:
    rng = random.Random()
    session = new_session("u1", script, rng)
    text = instruction_for(session, script, "hello")
    prompt = system_prompt_for(text)
    advance(session, script, rng)
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass

from speakcoach.lesson.schemas import LessonScript
from speakcoach.schemas import Phase, Session

logger = logging.getLogger(__name__)

# Above this many seconds left, wrap-up keeps the learner talking instead
# of saying goodbye.
WRAPUP_CONTINUE_THRESHOLD = 20.0


# ---------------------------------------------------------------------------
# Session creation
# ---------------------------------------------------------------------------


def pick_topic(script: LessonScript, rng: random.Random) -> str:
    """Chooses a topic uniformly at random."""
    return rng.choice(script.topic_names())


def new_session(identity: str, script: LessonScript, rng: random.Random) -> Session:
    """Creates a session at warmup with a freshly chosen topic."""
    session = Session(identity=identity, topic=pick_topic(script, rng))
    logger.info("New session for %s: topic=%s", identity, session.topic)
    return session


def _restart(session: Session, script: LessonScript, rng: random.Random) -> Phase:
    """Resets the session in place for the next lesson."""
    session.topic = pick_topic(script, rng)
    session.question_index = 0
    session.lessons_completed += 1
    logger.info(
        "Lesson %d complete for %s, next topic=%s",
        session.lessons_completed,
        session.identity,
        session.topic,
    )
    return Phase.WARMUP


# ---------------------------------------------------------------------------
# Instruction builders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TurnContext:
    """Read-only inputs an instruction builder may use."""

    session: Session
    script: LessonScript
    utterance: str
    remaining_seconds: float | None


def _warmup(ctx: TurnContext) -> str:
    return ctx.script.prompts.warmup


def _topic_intro(ctx: TurnContext) -> str:
    return f"Introduce the topic: {ctx.session.topic}"


def _guided_question(ctx: TurnContext) -> str:
    questions = ctx.script.questions_for(ctx.session.topic)
    # Clamp so a hand-edited session past the end still gets the last question.
    index = min(ctx.session.question_index, len(questions) - 1)
    return f'Ask this question naturally: "{questions[index]}"'


def _correction(ctx: TurnContext) -> str:
    return (
        "Correct the student's message in a friendly way. "
        "Explain briefly and give an example. "
        f'Student said: "{ctx.utterance}"'
    )


def _expansion(ctx: TurnContext) -> str:
    return ctx.script.prompts.expansion


def _wrapup(ctx: TurnContext) -> str:
    if ctx.remaining_seconds is not None and ctx.remaining_seconds > WRAPUP_CONTINUE_THRESHOLD:
        return ctx.script.prompts.wrapup_continue
    return ctx.script.prompts.wrapup


# ---------------------------------------------------------------------------
# Next-phase functions
# ---------------------------------------------------------------------------

NextPhase = Callable[[Session, LessonScript, random.Random], Phase]


def _goto(phase: Phase) -> NextPhase:
    def _next(session: Session, script: LessonScript, rng: random.Random) -> Phase:
        return phase

    return _next


def _next_question(session: Session, script: LessonScript, rng: random.Random) -> Phase:
    session.question_index += 1
    if session.question_index >= len(script.questions_for(session.topic)):
        return Phase.EXPANSION
    return Phase.GUIDED_QUESTIONS


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PhaseRule:
    """How one phase instructs the model and where it goes next."""

    instruction: Callable[[TurnContext], str]
    next_phase: NextPhase


_RULES: dict[Phase, PhaseRule] = {
    Phase.WARMUP: PhaseRule(_warmup, _goto(Phase.TOPIC_INTRO)),
    Phase.TOPIC_INTRO: PhaseRule(_topic_intro, _goto(Phase.GUIDED_QUESTIONS)),
    Phase.GUIDED_QUESTIONS: PhaseRule(_guided_question, _next_question),
    Phase.CORRECTION: PhaseRule(_correction, _goto(Phase.CORRECTION)),
    Phase.EXPANSION: PhaseRule(_expansion, _goto(Phase.WRAPUP)),
    Phase.WRAPUP: PhaseRule(_wrapup, _restart),
}

_missing = set(Phase) - set(_RULES)
if _missing:  # pragma: no cover
    raise RuntimeError(f"Phases without a transition rule: {sorted(p.value for p in _missing)}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def instruction_for(
    session: Session,
    script: LessonScript,
    last_user_utterance: str,
    remaining_seconds: float | None = None,
) -> str:
    """Returns the system instruction for the session's current phase.

    Never mutates the session.

    Args:
        session: The learner's session.
        script: The loaded lesson script.
        last_user_utterance: The utterance of the turn being answered.
        remaining_seconds: Quota left today. Only wrapup looks at it;
            None selects the final wrap-up wording.

    Returns:
        A non-empty instruction string.
    """
    ctx = TurnContext(
        session=session,
        script=script,
        utterance=last_user_utterance,
        remaining_seconds=remaining_seconds,
    )
    return _RULES[session.phase].instruction(ctx)


def advance(session: Session, script: LessonScript, rng: random.Random) -> None:
    """Moves the session one step along the lesson, in place.

    Call exactly once per completed turn — every call advances.
    """
    previous = session.phase
    session.phase = _RULES[previous].next_phase(session, script, rng)
    logger.info(
        "Session %s: %s -> %s (question_index=%d)",
        session.identity,
        previous.value,
        session.phase.value,
        session.question_index,
    )


# ---------------------------------------------------------------------------
# Tutor frame
# ---------------------------------------------------------------------------

TUTOR_FRAME = """You are an English tutor.

Correct the student ONLY when there is a clear, important mistake that a learner at A2-B1 level should genuinely fix.

Ignore:
- minor mistakes that do not affect meaning,
- natural variations of English,
- stylistic preferences,
- errors that are typical or expected at A2/B1,
- sentences that are already acceptable or natural.

If the student's message is correct or acceptable for their level, do NOT provide any correction. Just continue the conversation normally.

When a correction is truly needed, keep it brief, friendly, and focused on one key point.

After that, continue with the pedagogical task of the current phase.
Current phase instructions: {instruction}"""


def system_prompt_for(instruction: str) -> str:
    """Wraps a phase instruction in the standing tutor persona."""
    return TUTOR_FRAME.format(instruction=instruction)
