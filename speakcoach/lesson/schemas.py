"""Lesson script models — the static, read-only lesson catalogue.

A lesson script is one JSON document loaded at startup:

    {
      "topics":  {"travel": {"questions": ["...", "..."]}, ...},
      "prompts": {"warmup": "...", "expansion": "...",
                  "wrapup": "...", "wrapup_continue": "..."}
    }

All models are frozen — the script is shared by every session for the
process lifetime and must never change underneath them.

Leaf module: imports only from pydantic and the stdlib.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints, field_validator

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Topic(BaseModel):
    """One conversation topic with its ordered guided questions."""

    model_config = ConfigDict(frozen=True)

    questions: tuple[NonBlankStr, ...]

    @field_validator("questions")
    @classmethod
    def check_not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """A topic without questions would skip guided_questions entirely."""
        if not value:
            raise ValueError("topic must have at least one question")
        return value


class ScriptPrompts(BaseModel):
    """Fixed instruction texts for the phases that don't embed topic data."""

    model_config = ConfigDict(frozen=True)

    warmup: NonBlankStr
    expansion: NonBlankStr
    wrapup: NonBlankStr
    wrapup_continue: NonBlankStr


class LessonScript(BaseModel):
    """The full lesson catalogue: topics plus fixed phase prompts."""

    model_config = ConfigDict(frozen=True)

    topics: dict[NonBlankStr, Topic]
    prompts: ScriptPrompts

    @field_validator("topics")
    @classmethod
    def check_has_topics(cls, value: dict[str, Topic]) -> dict[str, Topic]:
        """Topic selection needs at least one candidate."""
        if not value:
            raise ValueError("script must define at least one topic")
        return value

    def topic_names(self) -> list[str]:
        """Returns topic names in document order."""
        return list(self.topics)

    def questions_for(self, topic: str) -> tuple[str, ...]:
        """Returns the ordered questions for a topic.

        Raises:
            KeyError: If the topic is not in the script.
        """
        return self.topics[topic].questions
