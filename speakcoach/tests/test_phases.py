"""Tests for speakcoach.engine.phases — instructions and transitions."""

import random

import pytest

from speakcoach.engine import phases
from speakcoach.engine.phases import (
    WRAPUP_CONTINUE_THRESHOLD,
    advance,
    instruction_for,
    new_session,
    pick_topic,
    system_prompt_for,
)
from speakcoach.schemas import Phase


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


# ---------------------------------------------------------------------------
# Session creation
# ---------------------------------------------------------------------------


class TestNewSession:
    def test_starts_at_warmup(self, make_script, rng) -> None:
        session = new_session("u1", make_script(), rng)
        assert session.identity == "u1"
        assert session.phase == Phase.WARMUP
        assert session.question_index == 0
        assert session.lessons_completed == 0

    def test_topic_comes_from_script(self, make_script, rng) -> None:
        script = make_script(
            topics={
                "travel": {"questions": ["q1"]},
                "food": {"questions": ["q2"]},
            }
        )
        for _ in range(20):
            assert pick_topic(script, rng) in {"travel", "food"}

    def test_seeded_rng_is_repeatable(self, make_script) -> None:
        script = make_script(
            topics={name: {"questions": ["q"]} for name in ("a", "b", "c", "d")}
        )
        first = [pick_topic(script, random.Random(3)) for _ in range(5)]
        second = [pick_topic(script, random.Random(3)) for _ in range(5)]
        assert first == second


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------


class TestInstructionFor:
    def test_warmup_uses_script_prompt(self, make_script, make_session) -> None:
        script = make_script()
        text = instruction_for(make_session(), script, "hello")
        assert text == script.prompts.warmup

    def test_topic_intro_names_topic(self, make_script, make_session) -> None:
        session = make_session(phase=Phase.TOPIC_INTRO)
        assert instruction_for(session, make_script(), "ok") == "Introduce the topic: travel"

    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_guided_question_quotes_current_question(
        self, make_script, make_session, index
    ) -> None:
        script = make_script()
        session = make_session(phase=Phase.GUIDED_QUESTIONS, question_index=index)
        question = script.questions_for("travel")[index]
        assert instruction_for(session, script, "x") == f'Ask this question naturally: "{question}"'

    def test_guided_question_clamps_out_of_range_index(
        self, make_script, make_session
    ) -> None:
        script = make_script()
        session = make_session(phase=Phase.GUIDED_QUESTIONS, question_index=9)
        assert script.questions_for("travel")[-1] in instruction_for(session, script, "x")

    def test_correction_embeds_utterance(self, make_script, make_session) -> None:
        session = make_session(phase=Phase.CORRECTION)
        text = instruction_for(session, make_script(), "I goed to school")
        assert text == (
            "Correct the student's message in a friendly way. "
            "Explain briefly and give an example. "
            'Student said: "I goed to school"'
        )

    def test_expansion_uses_script_prompt(self, make_script, make_session) -> None:
        script = make_script()
        session = make_session(phase=Phase.EXPANSION)
        assert instruction_for(session, script, "x") == script.prompts.expansion

    def test_wrapup_continues_when_time_remains(self, make_script, make_session) -> None:
        script = make_script()
        session = make_session(phase=Phase.WRAPUP)
        text = instruction_for(session, script, "x", remaining_seconds=120.0)
        assert text == script.prompts.wrapup_continue

    @pytest.mark.parametrize("remaining", [None, 0.0, 5.0, WRAPUP_CONTINUE_THRESHOLD])
    def test_wrapup_says_goodbye_near_the_limit(
        self, make_script, make_session, remaining
    ) -> None:
        script = make_script()
        session = make_session(phase=Phase.WRAPUP)
        text = instruction_for(session, script, "x", remaining_seconds=remaining)
        assert text == script.prompts.wrapup

    @pytest.mark.parametrize("phase", list(Phase))
    def test_every_phase_yields_non_empty_instruction(
        self, make_script, make_session, phase
    ) -> None:
        session = make_session(phase=phase)
        assert instruction_for(session, make_script(), "hi").strip()

    def test_does_not_mutate_session(self, make_script, make_session) -> None:
        session = make_session(phase=Phase.GUIDED_QUESTIONS, question_index=1)
        before = session.model_copy()
        instruction_for(session, make_script(), "hi", remaining_seconds=10.0)
        assert session == before


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestAdvance:
    def test_warmup_to_topic_intro(self, make_script, make_session, rng) -> None:
        session = make_session()
        advance(session, make_script(), rng)
        assert session.phase == Phase.TOPIC_INTRO

    def test_topic_intro_to_guided_questions(self, make_script, make_session, rng) -> None:
        session = make_session(phase=Phase.TOPIC_INTRO)
        advance(session, make_script(), rng)
        assert session.phase == Phase.GUIDED_QUESTIONS
        assert session.question_index == 0

    def test_guided_questions_steps_through_questions(
        self, make_script, make_session, rng
    ) -> None:
        session = make_session(phase=Phase.GUIDED_QUESTIONS)
        script = make_script()
        advance(session, script, rng)
        assert session.phase == Phase.GUIDED_QUESTIONS
        assert session.question_index == 1

    def test_last_question_moves_to_expansion(self, make_script, make_session, rng) -> None:
        session = make_session(phase=Phase.GUIDED_QUESTIONS, question_index=2)
        advance(session, make_script(), rng)
        assert session.phase == Phase.EXPANSION

    def test_single_question_topic_goes_straight_to_expansion(
        self, make_script, make_session, rng
    ) -> None:
        script = make_script(topics={"travel": {"questions": ["Only one?"]}})
        session = make_session(phase=Phase.GUIDED_QUESTIONS)
        advance(session, script, rng)
        assert session.phase == Phase.EXPANSION

    def test_expansion_to_wrapup(self, make_script, make_session, rng) -> None:
        session = make_session(phase=Phase.EXPANSION)
        advance(session, make_script(), rng)
        assert session.phase == Phase.WRAPUP

    def test_wrapup_restarts_lesson(self, make_script, make_session, rng) -> None:
        session = make_session(phase=Phase.WRAPUP, question_index=3)
        advance(session, make_script(), rng)
        assert session.phase == Phase.WARMUP
        assert session.question_index == 0
        assert session.lessons_completed == 1
        assert session.topic == "travel"

    def test_correction_stays_in_correction(self, make_script, make_session, rng) -> None:
        session = make_session(phase=Phase.CORRECTION)
        advance(session, make_script(), rng)
        assert session.phase == Phase.CORRECTION

    def test_full_cycle_returns_to_warmup(self, make_script, rng) -> None:
        """4 + N advances bring a fresh session back to warmup."""
        script = make_script()
        session = new_session("u1", script, rng)
        seen = []
        for _ in range(4 + len(script.questions_for("travel"))):
            seen.append(session.phase)
            advance(session, script, rng)

        assert seen == [
            Phase.WARMUP,
            Phase.TOPIC_INTRO,
            Phase.GUIDED_QUESTIONS,
            Phase.GUIDED_QUESTIONS,
            Phase.GUIDED_QUESTIONS,
            Phase.EXPANSION,
            Phase.WRAPUP,
        ]
        assert session.phase == Phase.WARMUP
        assert session.lessons_completed == 1

    def test_questions_asked_in_script_order(self, make_script, rng) -> None:
        script = make_script()
        session = new_session("u1", script, rng)
        advance(session, script, rng)  # warmup
        advance(session, script, rng)  # topic_intro

        asked = []
        while session.phase == Phase.GUIDED_QUESTIONS:
            asked.append(instruction_for(session, script, "answer"))
            advance(session, script, rng)

        assert asked == [
            f'Ask this question naturally: "{q}"' for q in script.questions_for("travel")
        ]

    def test_index_never_exceeds_question_count(self, make_script, rng) -> None:
        script = make_script()
        session = new_session("u1", script, rng)
        for _ in range(50):
            advance(session, script, rng)
            assert session.question_index <= len(script.questions_for(session.topic))


def test_every_phase_has_a_rule() -> None:
    assert set(phases._RULES) == set(Phase)


class TestSystemPromptFor:
    def test_wraps_instruction_in_tutor_frame(self) -> None:
        prompt = system_prompt_for("Introduce the topic: travel")
        assert prompt.startswith("You are an English tutor.")
        assert "clear, important mistake" in prompt
        assert prompt.endswith("Current phase instructions: Introduce the topic: travel")

    def test_braces_in_instruction_survive(self) -> None:
        prompt = system_prompt_for('Ask this question naturally: "{what} do you like?"')
        assert prompt.endswith('"{what} do you like?"')
