"""Turn orchestrator — one chat turn from utterance to reply.

Wires the session store, phase engine, quota ledger and AI provider into
the per-turn flow:

    session (get or create) → today's quota → gate
        → phase instruction → message list → provider
        → advance phase → reply + pre-turn quota

This is the only code path that advances a session. All work for one
identity runs under that identity's lock, so two concurrent turns for the
same learner cannot interleave their read-instruction and advance steps.
Different identities never wait on each other.

Practice time is recorded separately via record_practice_time(); a chat
turn never writes to the ledger.

Consumed by the HTTP layer in speakcoach.api.tutor.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass

from speakcoach.ai.providers.base import AIProvider, UsageInfo
from speakcoach.ai.usage import log_ai_call
from speakcoach.engine import phases
from speakcoach.engine.locks import KeyedLock
from speakcoach.engine.quota import SESSION_LIMIT_SECONDS, QuotaLedger, is_admitted
from speakcoach.errors import CollaboratorError
from speakcoach.hooks.interfaces import SessionStore
from speakcoach.lesson.schemas import LessonScript
from speakcoach.models import ModelConfig
from speakcoach.schemas import ConversationTurn, QuotaRecord, Session

logger = logging.getLogger(__name__)

LIMIT_REACHED_REPLY = "You have reached your 5-minute practice limit for today."

# Returned in place of a reply when the model answered without usable text.
ERROR_REPLY = "Error"


@dataclass(frozen=True)
class ChatTurnResult:
    """Outcome of one chat turn.

    Attributes:
        reply: The tutor's reply, LIMIT_REACHED_REPLY, or ERROR_REPLY.
        time_spent_today: Ledger seconds read before this turn.
        limited: True when the quota gate refused the turn.
    """

    reply: str
    time_spent_today: float
    limited: bool = False


def build_messages(
    history: list[ConversationTurn], utterance: str,
) -> list[dict[str, str]]:
    """Flattens caller history plus the new utterance into provider messages.

    Each turn contributes its user entry, then its bot entry if present.
    Blank entries are skipped. The new utterance is always last.
    """
    messages: list[dict[str, str]] = []
    for turn in history:
        if turn.user:
            messages.append({"role": "user", "content": turn.user})
        if turn.bot:
            messages.append({"role": "assistant", "content": turn.bot})
    messages.append({"role": "user", "content": utterance})
    return messages


class TurnOrchestrator:
    """Runs chat turns and practice-time records against injected services.

    Args:
        script: The loaded lesson script.
        session_store: Where sessions live between turns.
        ledger: The quota ledger.
        provider: The chat-completion collaborator.
        model_config: Model settings passed to every provider call.
        rng: Random source for topic selection. Seed it in tests.
        session_limit_seconds: Daily practice allowance per identity.
    """

    def __init__(
        self,
        script: LessonScript,
        session_store: SessionStore,
        ledger: QuotaLedger,
        provider: AIProvider,
        model_config: ModelConfig,
        rng: random.Random | None = None,
        session_limit_seconds: float = SESSION_LIMIT_SECONDS,
    ) -> None:
        self._script = script
        self._sessions = session_store
        self._ledger = ledger
        self._provider = provider
        self._model_config = model_config
        self._rng = rng or random.Random()
        self._limit = session_limit_seconds
        self._locks = KeyedLock()

    @property
    def session_limit_seconds(self) -> float:
        return self._limit

    async def _load_or_create(self, identity: str) -> Session:
        session = await self._sessions.get_session(identity)
        if session is None:
            session = phases.new_session(identity, self._script, self._rng)
            await self._sessions.save_session(session)
        return session

    async def handle_chat_turn(
        self,
        identity: str,
        utterance: str,
        history: list[ConversationTurn] | None = None,
    ) -> ChatTurnResult:
        """Processes one learner utterance.

        Args:
            identity: User id or client IP.
            utterance: What the learner just said.
            history: Prior exchanges, oldest first. Not stored.

        Returns:
            ChatTurnResult with the reply and the pre-turn quota reading.

        Raises:
            ValueError: If identity is empty.
            CollaboratorError: If the provider call fails. The session is
                left exactly as it was before the turn.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        async with self._locks(identity):
            session = await self._load_or_create(identity)
            day = self._ledger.today()
            used = await self._ledger.seconds_used(identity, day)

            if not is_admitted(used, self._limit):
                logger.info(
                    "Daily limit reached for %s: %.1fs used of %.0fs", identity, used, self._limit,
                )
                return ChatTurnResult(reply=LIMIT_REACHED_REPLY, time_spent_today=used, limited=True)

            instruction = phases.instruction_for(
                session, self._script, utterance, remaining_seconds=self._limit - used,
            )
            messages = build_messages(history or [], utterance)
            logger.debug(
                "Turn for %s in %s: %d history message(s)",
                identity,
                session.phase.value,
                len(messages) - 1,
            )

            phase_at_call = session.phase.value
            start = time.monotonic()
            try:
                text, usage = await self._provider.complete(
                    system_prompt=phases.system_prompt_for(instruction),
                    messages=messages,
                    model_config=self._model_config,
                )
            except Exception as exc:
                logger.exception("Chat provider failed for %s in %s", identity, phase_at_call)
                raise CollaboratorError("The tutor model is unavailable.") from exc
            latency_ms = (time.monotonic() - start) * 1000

            reply = text.strip() if isinstance(text, str) else ""
            if not reply:
                logger.warning("Empty or malformed reply for %s in %s", identity, phase_at_call)
                reply = ERROR_REPLY

            self._log_usage(usage, latency_ms, identity, phase_at_call)

            phases.advance(session, self._script, self._rng)
            await self._sessions.save_session(session)

        return ChatTurnResult(reply=reply, time_spent_today=used)

    async def record_practice_time(self, identity: str, delta_seconds: float) -> float:
        """Adds practice time to today's ledger row and returns the new total.

        Independent of chat turns: may be skipped, retried or repeated.

        Raises:
            ValueError: If identity is empty or delta_seconds is negative.
            QuotaStoreError: If the ledger cannot persist the total.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")
        return await self._ledger.add_seconds(identity, self._ledger.today(), delta_seconds)

    async def practice_time_today(self, identity: str) -> QuotaRecord:
        """Today's ledger row for an identity (zero seconds if none)."""
        return await self._ledger.record(identity, self._ledger.today())

    async def get_session(self, identity: str) -> Session | None:
        """Returns the stored session for an identity, without creating one."""
        return await self._sessions.get_session(identity)

    async def reset_session(self, identity: str) -> None:
        """Drops the identity's session; the next turn starts a fresh lesson."""
        async with self._locks(identity):
            await self._sessions.delete_session(identity)
        logger.info("Session reset for %s", identity)

    def _log_usage(
        self, usage: UsageInfo | None, latency_ms: float, identity: str, phase: str,
    ) -> None:
        log_ai_call(
            model_id=self._model_config.model_id,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms,
            identity=identity,
            phase=phase,
            call_type="chat",
        )
